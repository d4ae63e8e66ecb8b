from feedme.extensions import db
from feedme.utils.timeutils import utcnow
import uuid

SESSION_STATUSES = ("upcoming", "active", "closed")
PARTICIPANT_STATUSES = ("pending", "ordered", "passed", "preset")


def gen_session_id():
    return f"ses_{uuid.uuid4().hex[:16]}"


class OrderSession(db.Model):
    __tablename__ = "order_sessions"

    __table_args__ = (
        db.Index("idx_order_sessions_company_status", "company_id", "status"),
    )

    id = db.Column(db.String(64), primary_key=True, default=gen_session_id)
    company_id = db.Column(db.String(64), nullable=False)
    restaurant_name = db.Column(db.String(255), nullable=False)
    restaurant_options = db.Column(db.JSON, nullable=False, default=list)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    status = db.Column(db.String(20), nullable=False, default="upcoming")
    doordash_group_link = db.Column(db.String(1024))
    created_by = db.Column(db.String(64), db.ForeignKey("users.id"))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    participants = db.relationship(
        "OrderSessionParticipant",
        backref="session",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderSessionParticipant.created_at",
    )


class OrderSessionParticipant(db.Model):
    __tablename__ = "order_session_participants"

    __table_args__ = (
        db.UniqueConstraint("session_id", "user_id", name="uq_participant_session_user"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    session_id = db.Column(
        db.String(64),
        db.ForeignKey("order_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(255))
    status = db.Column(db.String(20), nullable=False, default="pending")
    preset_order = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
