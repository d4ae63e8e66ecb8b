from feedme.extensions import db
from feedme.utils.timeutils import utcnow
import uuid

PAYMENT_STATUSES = ("pending", "succeeded", "failed", "canceled")


def gen_order_id():
    return f"ord_{uuid.uuid4().hex[:16]}"


class Order(db.Model):
    __tablename__ = "orders"

    __table_args__ = (
        db.Index("idx_orders_payment_intent", "payment_intent_id"),
        db.Index("idx_orders_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.String(64), primary_key=True, default=gen_order_id)
    user_id = db.Column(db.String(64), db.ForeignKey("users.id"), nullable=False)
    user_name = db.Column(db.String(255))
    restaurant_id = db.Column(db.String(255), nullable=False)
    items = db.Column(db.JSON, nullable=False, default=list)
    item_count = db.Column(db.Integer, default=0)
    status = db.Column(db.String(30), default="pending")

    # cents
    food_amount = db.Column(db.Integer, default=0)
    service_fee = db.Column(db.Integer, default=0)
    platform_fee = db.Column(db.Integer, default=0)
    delivery_fee = db.Column(db.Integer, default=0)
    total_amount = db.Column(db.Integer, default=0)

    payment_intent_id = db.Column(db.String(255))
    payment_status = db.Column(db.String(30), nullable=False, default="pending")

    delivery_status = db.Column(db.String(50), nullable=False, default="pending")
    external_delivery_id = db.Column(db.String(255), unique=True, nullable=False)
    delivery_id = db.Column(db.String(255))
    tracking_url = db.Column(db.String(1024))
    pickup_time = db.Column(db.DateTime)
    dropoff_time = db.Column(db.DateTime)
    pickup_time_estimated = db.Column(db.DateTime)
    dropoff_time_estimated = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship("User", backref=db.backref("orders", lazy=True))
