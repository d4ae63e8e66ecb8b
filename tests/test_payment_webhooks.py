import json
import time

import pytest

from feedme.extensions import db
from feedme.models.delivery_handoff import DeliveryHandoff
from feedme.models.order import Order
from feedme.models.payment import PaymentDispute, PaymentIntent
from feedme.utils.webhook_signing import sign_stripe

SECRET = "whsec_stripe_test"
URL = "/api/v1/webhooks/stripe"


def _post(client, event, secret=SECRET, timestamp=None):
    body = json.dumps(event).encode()
    ts = int(timestamp if timestamp is not None else time.time())
    return client.post(
        URL,
        data=body,
        content_type="application/json",
        headers={"Stripe-Signature": sign_stripe(secret, ts, body)},
    )


def _intent_event(event_type, intent_id="pi_123", **obj):
    return {"id": "evt_1", "type": event_type, "data": {"object": {"id": intent_id, **obj}}}


@pytest.fixture
def paid_order(app, employee):
    order = Order(
        user_id=employee.id,
        user_name=employee.display_name,
        restaurant_id="rst_pizza",
        items=[{"id": "m1", "name": "Margherita", "quantity": 1}],
        item_count=1,
        food_amount=1500,
        total_amount=1899,
        payment_intent_id="pi_123",
        external_delivery_id="feedme_1700000000000_user_employee",
    )
    db.session.add(order)
    db.session.commit()
    return order


def test_missing_signature_is_rejected(client, paid_order):
    res = client.post(URL, json=_intent_event("payment_intent.succeeded"))
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_SIGNATURE"
    assert res.get_json()["error"] == "No signature"
    assert db.session.get(Order, paid_order.id).payment_status == "pending"


def test_wrong_secret_is_rejected(client, paid_order):
    res = _post(client, _intent_event("payment_intent.succeeded"), secret="whsec_wrong")
    assert res.status_code == 400
    assert db.session.get(Order, paid_order.id).payment_status == "pending"


def test_stale_signature_is_rejected(client, paid_order):
    res = _post(client, _intent_event("payment_intent.succeeded"), timestamp=time.time() - 3600)
    assert res.status_code == 400


def test_succeeded_marks_order_and_emits_one_handoff(client, paid_order):
    event = _intent_event("payment_intent.succeeded", payment_method="pm_card", amount=1899, currency="usd")

    res = _post(client, event)
    assert res.status_code == 200
    assert res.get_json()["handoffs"] == 1

    order = db.session.get(Order, paid_order.id)
    assert order.payment_status == "succeeded"
    intent = db.session.get(PaymentIntent, "pi_123")
    assert intent.status == "succeeded"
    assert intent.payment_method_id == "pm_card"
    assert intent.order_id == paid_order.id

    res = _post(client, event)
    assert res.status_code == 200
    assert res.get_json()["handoffs"] == 0
    assert DeliveryHandoff.query.filter_by(order_id=paid_order.id).count() == 1


@pytest.mark.parametrize(
    "event_type,expected",
    [("payment_intent.payment_failed", "failed"), ("payment_intent.canceled", "canceled")],
)
def test_failure_events_update_payment_status(client, paid_order, event_type, expected):
    res = _post(client, _intent_event(event_type))
    assert res.status_code == 200
    assert db.session.get(Order, paid_order.id).payment_status == expected
    assert DeliveryHandoff.query.count() == 0


def test_unknown_payment_intent_is_acknowledged_and_dropped(client, paid_order):
    res = _post(client, _intent_event("payment_intent.succeeded", intent_id="pi_unknown"))
    assert res.status_code == 200
    assert res.get_json()["handled"] is False
    assert db.session.get(PaymentIntent, "pi_unknown") is None
    assert db.session.get(Order, paid_order.id).payment_status == "pending"


def _other_order(user, external_id, intent_id=None):
    order = Order(
        user_id=user.id,
        restaurant_id="rst_sushi",
        items=[{"id": "s1", "name": "Salmon roll", "quantity": 1}],
        item_count=1,
        payment_intent_id=intent_id,
        external_delivery_id=external_id,
    )
    db.session.add(order)
    db.session.commit()
    return order


def test_succeeded_leaves_unrelated_orders_untouched(client, paid_order, manager):
    other = _other_order(manager, "feedme_1700000000001_user_manager", intent_id="pi_other")
    unpaid = _other_order(manager, "feedme_1700000000002_user_manager")

    res = _post(client, _intent_event("payment_intent.succeeded"))
    assert res.status_code == 200
    assert res.get_json()["orders"] == 1

    assert db.session.get(Order, paid_order.id).payment_status == "succeeded"
    for order_id in (other.id, unpaid.id):
        assert db.session.get(Order, order_id).payment_status == "pending"
        assert DeliveryHandoff.query.filter_by(order_id=order_id).count() == 0
    assert DeliveryHandoff.query.count() == 1


def test_intent_event_without_id_does_not_match_unpaid_orders(client, manager):
    unpaid = _other_order(manager, "feedme_1700000000002_user_manager")

    res = _post(client, {"type": "payment_intent.succeeded", "data": {"object": {}}})
    assert res.status_code == 200
    assert res.get_json()["handled"] is False

    assert db.session.get(Order, unpaid.id).payment_status == "pending"
    assert PaymentIntent.query.count() == 0
    assert DeliveryHandoff.query.count() == 0


def test_dispute_is_recorded_once(client, paid_order):
    event = {
        "type": "charge.dispute.created",
        "data": {"object": {
            "id": "dp_1",
            "charge": "ch_1",
            "payment_intent": "pi_123",
            "amount": 1899,
            "currency": "usd",
            "reason": "fraudulent",
            "status": "needs_response",
        }},
    }
    assert _post(client, event).status_code == 200
    assert _post(client, event).status_code == 200

    disputes = PaymentDispute.query.all()
    assert len(disputes) == 1
    assert disputes[0].order_id == paid_order.id
    assert disputes[0].reason == "fraudulent"


def test_other_event_types_are_acknowledged(client):
    res = _post(client, {"type": "customer.created", "data": {"object": {"id": "cus_1"}}})
    assert res.status_code == 200
    assert res.get_json()["handled"] is False


def test_paid_order_is_dispatched_once(client, paid_order, admin, delivery_client, auth_headers):
    _post(client, _intent_event("payment_intent.succeeded"))

    res = client.post("/api/v1/deliveries/dispatch", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.get_json()["dispatched"] == 1

    order = db.session.get(Order, paid_order.id)
    assert order.delivery_id == paid_order.external_delivery_id
    assert order.delivery_status == "created"
    assert order.handoff.status == "dispatched"

    res = client.post("/api/v1/deliveries/dispatch", headers=auth_headers(admin))
    assert res.get_json()["dispatched"] == 0
    assert len(delivery_client.created) == 1


def test_dispatch_failure_is_recorded(client, paid_order, admin, delivery_client, auth_headers):
    from feedme.utils.exceptions import ProviderUnavailable

    _post(client, _intent_event("payment_intent.succeeded"))
    delivery_client.fail_with = ProviderUnavailable("down")

    res = client.post("/api/v1/deliveries/dispatch", headers=auth_headers(admin))
    assert res.get_json() == {"success": True, "dispatched": 0, "failed": 1}
    handoff = DeliveryHandoff.query.one()
    assert handoff.status == "failed"
    assert handoff.error == "down"


def test_dispatch_requires_admin(client, employee, auth_headers):
    res = client.post("/api/v1/deliveries/dispatch", headers=auth_headers(employee))
    assert res.status_code == 403
