from feedme.extensions import db
from feedme.utils.timeutils import utcnow


class PaymentIntent(db.Model):
    __tablename__ = "payment_intents"

    # provider payment-intent id
    id = db.Column(db.String(255), primary_key=True)
    order_id = db.Column(db.String(64), db.ForeignKey("orders.id"), nullable=True, index=True)
    amount = db.Column(db.Integer)
    currency = db.Column(db.String(10), default="usd")
    status = db.Column(db.String(30), nullable=False, default="pending")
    payment_method_id = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class PaymentDispute(db.Model):
    __tablename__ = "payment_disputes"

    # provider dispute id
    id = db.Column(db.String(255), primary_key=True)
    charge_id = db.Column(db.String(255))
    payment_intent_id = db.Column(db.String(255), index=True)
    order_id = db.Column(db.String(64), db.ForeignKey("orders.id"), nullable=True)
    amount = db.Column(db.Integer)
    currency = db.Column(db.String(10))
    reason = db.Column(db.String(100))
    status = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, default=utcnow)
