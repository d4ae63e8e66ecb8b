import logging

from sqlalchemy.exc import IntegrityError

from feedme.extensions import db
from feedme.models.delivery_handoff import DeliveryHandoff
from feedme.models.order import Order
from feedme.models.payment import PaymentDispute, PaymentIntent
from feedme.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

PAYMENT_STATUS_BY_EVENT = {
    "payment_intent.succeeded": "succeeded",
    "payment_intent.payment_failed": "failed",
    "payment_intent.canceled": "canceled",
}


def _mirror_payment_status(intent_id, status, payment_method=None, amount=None, currency=None):
    orders = Order.query.filter_by(payment_intent_id=intent_id).all()
    for order in orders:
        order.payment_status = status
        order.updated_at = utcnow()

    record = db.session.get(PaymentIntent, intent_id)
    if record is None and orders:
        record = PaymentIntent(id=intent_id, order_id=orders[0].id)
        db.session.add(record)
    if record is not None:
        record.status = status
        if payment_method:
            record.payment_method_id = payment_method
        if amount is not None:
            record.amount = amount
        if currency:
            record.currency = currency
    return orders


def _emit_delivery_handoff(order, intent_id):
    if DeliveryHandoff.query.filter_by(order_id=order.id).first():
        return False
    db.session.add(DeliveryHandoff(order_id=order.id, payment_intent_id=intent_id))
    return True


def _record_dispute(dispute):
    dispute_id = dispute.get("id")
    if not dispute_id:
        logger.warning("Dispute event without id, dropping")
        return None
    existing = db.session.get(PaymentDispute, dispute_id)
    if existing:
        return existing

    intent_id = dispute.get("payment_intent")
    order = Order.query.filter_by(payment_intent_id=intent_id).first() if intent_id else None
    record = PaymentDispute(
        id=dispute_id,
        charge_id=dispute.get("charge"),
        payment_intent_id=intent_id,
        order_id=order.id if order else None,
        amount=dispute.get("amount"),
        currency=dispute.get("currency"),
        reason=dispute.get("reason"),
        status=dispute.get("status"),
    )
    db.session.add(record)
    logger.warning("Charge dispute %s recorded for order %s, needs manual follow-up",
                   dispute_id, record.order_id)
    return record


def reconcile_payment_event(event):
    """Mirror a verified payment-provider event onto local order records."""
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}
    logger.info("Payment webhook event: %s", event_type)

    if event_type in PAYMENT_STATUS_BY_EVENT:
        intent_id = obj.get("id")
        if not intent_id:
            logger.warning("%s event without payment intent id, dropping", event_type)
            return {"handled": False, "orders": 0}
        status = PAYMENT_STATUS_BY_EVENT[event_type]
        orders = _mirror_payment_status(
            intent_id,
            status,
            payment_method=obj.get("payment_method"),
            amount=obj.get("amount"),
            currency=obj.get("currency"),
        )
        if not orders:
            db.session.rollback()
            logger.warning("No order for payment intent %s (%s), dropping", intent_id, event_type)
            return {"handled": False, "orders": 0}

        handoffs = 0
        if status == "succeeded":
            for order in orders:
                if _emit_delivery_handoff(order, intent_id):
                    handoffs += 1
        try:
            db.session.commit()
        except IntegrityError:
            # concurrent replay already emitted the handoff
            db.session.rollback()
            handoffs = 0
            _mirror_payment_status(intent_id, status)
            db.session.commit()

        if handoffs:
            logger.info("Order(s) for payment %s ready for delivery creation", intent_id)
        return {"handled": True, "orders": len(orders), "handoffs": handoffs}

    if event_type == "charge.dispute.created":
        record = _record_dispute(obj)
        db.session.commit()
        return {"handled": record is not None, "dispute": record.id if record else None}

    logger.info("Unhandled event type: %s", event_type)
    return {"handled": False}
