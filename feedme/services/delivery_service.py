import logging

from flask import current_app

from feedme.extensions import db
from feedme.models.delivery_handoff import DeliveryHandoff
from feedme.models.order import Order
from feedme.utils.exceptions import ServiceError, UpstreamFailure
from feedme.utils.timeutils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)


def get_delivery_client():
    return current_app.extensions["delivery_client"]


def _safe_timestamp(value):
    try:
        return parse_timestamp(value)
    except ServiceError:
        return None


def refresh_delivery_status(order, client=None):
    """Mirror the live delivery status onto ``order``; keep cached data on failure."""
    if not order.delivery_id:
        return order, False

    client = client or get_delivery_client()
    try:
        live = client.get_status(order.delivery_id)
    except UpstreamFailure as e:
        logger.warning("Serving cached delivery status for order %s: %s", order.id, e.message)
        return order, False

    if live.get("status"):
        order.delivery_status = live["status"]
    if live.get("tracking_url"):
        order.tracking_url = live["tracking_url"]
    order.pickup_time_estimated = _safe_timestamp(live.get("pickup_time_estimated")) or order.pickup_time_estimated
    order.dropoff_time_estimated = _safe_timestamp(live.get("dropoff_time_estimated")) or order.dropoff_time_estimated
    db.session.commit()
    return order, True


def apply_delivery_event(payload):
    external_id = payload.get("external_delivery_id")
    if not external_id:
        logger.info("Delivery webhook without external_delivery_id, ignoring")
        return None

    order = Order.query.filter_by(external_delivery_id=external_id).first()
    if not order:
        logger.warning("Delivery webhook for unknown external id %s, dropping", external_id)
        return None

    if payload.get("delivery_id"):
        order.delivery_id = payload["delivery_id"]
    status = payload.get("status") or payload.get("delivery_status")
    if status:
        order.delivery_status = status
    if payload.get("pickup_time"):
        order.pickup_time = _safe_timestamp(payload["pickup_time"])
    if payload.get("dropoff_time"):
        order.dropoff_time = _safe_timestamp(payload["dropoff_time"])
    if payload.get("tracking_url"):
        order.tracking_url = payload["tracking_url"]
    order.updated_at = utcnow()
    db.session.commit()

    logger.info("Order %s delivery status updated to: %s", external_id, order.delivery_status)
    return order


def build_delivery_payload(order):
    return {
        "external_delivery_id": order.external_delivery_id,
        "order_value": order.food_amount or order.total_amount or 0,
        "items": [
            {
                "name": item.get("name"),
                "quantity": item.get("quantity", 1),
            }
            for item in (order.items or [])
            if isinstance(item, dict)
        ],
        "pickup_external_business_id": order.restaurant_id,
    }


def dispatch_pending_handoffs(client=None, limit=50):
    client = client or get_delivery_client()
    handoffs = (
        DeliveryHandoff.query
        .filter_by(status="pending")
        .order_by(DeliveryHandoff.created_at)
        .limit(limit)
        .all()
    )

    dispatched, failed = 0, 0
    for handoff in handoffs:
        order = handoff.order
        try:
            result = client.create_delivery(build_delivery_payload(order))
        except ServiceError as e:
            handoff.status = "failed"
            handoff.error = e.message
            failed += 1
            logger.error("Delivery dispatch failed for order %s: %s", order.id, e.message)
        else:
            order.delivery_id = result.get("delivery_id")
            order.tracking_url = result.get("tracking_url") or order.tracking_url
            if result.get("status"):
                order.delivery_status = result["status"]
            handoff.status = "dispatched"
            handoff.dispatched_at = utcnow()
            dispatched += 1
        db.session.commit()

    return {"dispatched": dispatched, "failed": failed}
