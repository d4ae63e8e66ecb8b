from feedme.extensions import db
from feedme.utils.timeutils import utcnow


class DeliveryHandoff(db.Model):
    """A paid order waiting for a provider delivery to be created."""

    __tablename__ = "delivery_handoffs"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    order_id = db.Column(db.String(64), db.ForeignKey("orders.id"), unique=True, nullable=False)
    payment_intent_id = db.Column(db.String(255))
    status = db.Column(db.String(20), nullable=False, default="pending")
    error = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    dispatched_at = db.Column(db.DateTime)

    order = db.relationship("Order", backref=db.backref("handoff", uselist=False))
