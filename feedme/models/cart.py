from feedme.extensions import db
from feedme.utils.timeutils import utcnow


class Cart(db.Model):
    __tablename__ = "carts"

    user_id = db.Column(db.String(64), db.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    items = db.Column(db.JSON, nullable=False, default=list)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)
