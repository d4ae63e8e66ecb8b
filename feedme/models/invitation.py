from feedme.extensions import db
from feedme.utils.timeutils import utcnow
import uuid


def gen_invitation_id():
    return f"inv_{uuid.uuid4().hex[:16]}"


class Invitation(db.Model):
    __tablename__ = "invitations"

    __table_args__ = (
        db.CheckConstraint("used_count <= max_uses", name="ck_invitations_used_count"),
    )

    id = db.Column(db.String(64), primary_key=True, default=gen_invitation_id)
    company_id = db.Column(db.String(64), nullable=False, index=True)
    company_name = db.Column(db.String(255), nullable=False)
    invite_code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False, default="employee")
    created_by = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    max_uses = db.Column(db.Integer, nullable=False, default=1)
    used_count = db.Column(db.Integer, nullable=False, default=0)
    used_by = db.Column(db.JSON, nullable=False, default=list)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    creator = db.relationship("User", foreign_keys=[created_by], lazy=True)

    def is_expired(self, now=None):
        return (now or utcnow()) > self.expires_at

    def is_usable(self, now=None):
        return (
            self.is_active
            and not self.is_expired(now)
            and self.used_count < self.max_uses
        )
