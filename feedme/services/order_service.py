import time

from flask import current_app

from feedme.extensions import db
from feedme.models.delivery_handoff import DeliveryHandoff
from feedme.models.order import Order
from feedme.models.payment import PaymentDispute, PaymentIntent
from feedme.utils.auth_utils import require_roles
from feedme.utils.exceptions import InvalidInput, NotFound


def gen_external_delivery_id(user_id):
    return f"feedme_{int(time.time() * 1000)}_{user_id}"


def _cents(data, key, default=0):
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{key} must be an integer amount in cents", {"field": key})


def create_order(user, data):
    restaurant_id = data.get("restaurant_id")
    items = data.get("items")
    if not restaurant_id or not items or not isinstance(items, list):
        raise InvalidInput("restaurant_id and a non-empty items list are required")

    food = _cents(data, "food_amount")
    service = _cents(data, "service_fee")
    platform = _cents(data, "platform_fee")
    delivery = _cents(data, "delivery_fee", current_app.config.get("DEFAULT_DELIVERY_FEE", 399))
    total = _cents(data, "total_amount", food + service + platform + delivery)

    order = Order(
        user_id=user.id,
        user_name=user.display_name,
        restaurant_id=restaurant_id,
        items=items,
        item_count=len(items),
        status="pending",
        food_amount=food,
        service_fee=service,
        platform_fee=platform,
        delivery_fee=delivery,
        total_amount=total,
        payment_intent_id=data.get("payment_intent_id"),
        # mirrors the payment provider, only webhooks move it
        payment_status="pending",
        delivery_status="pending",
        external_delivery_id=gen_external_delivery_id(user.id),
    )
    db.session.add(order)
    db.session.commit()
    return order


def list_orders_query(user):
    return Order.query.filter_by(user_id=user.id).order_by(Order.created_at.desc())


def get_order(order_id, user):
    order = Order.query.filter_by(id=order_id, user_id=user.id).first()
    if not order:
        raise NotFound("Order not found")
    return order


def clear_orders(requester):
    require_roles(requester, "admin", message="Only admins can clear orders")
    DeliveryHandoff.query.delete()
    PaymentDispute.query.update({"order_id": None})
    PaymentIntent.query.update({"order_id": None})
    deleted = Order.query.delete()
    db.session.commit()
    return deleted
