import base64
import json

import jwt
import pytest
import requests

from feedme.extensions import db
from feedme.models.order import Order
from feedme.services.delivery_client import DeliveryClient
from feedme.utils.exceptions import (
    InvalidAddress,
    InvalidInput,
    ProviderUnavailable,
    UpstreamFailure,
)
from feedme.utils.webhook_signing import sign_body

SIGNING_SECRET = "c2lnbmluZy1zZWNyZXQtZm9yLWRlbGl2ZXJ5LWFwaS10ZXN0cw"
WEBHOOK_SECRET = "doordash-webhook-test"


class FakeResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body
        self.content = json.dumps(body).encode() if body is not None else b""
        self.text = self.content.decode()

    def json(self):
        return self._body


class FakeHTTP:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _client(*responses):
    http = FakeHTTP(*responses)
    client = DeliveryClient("dev-123", "key-456", SIGNING_SECRET, "https://doordash.test", http=http)
    return client, http


def _secret_bytes():
    return base64.urlsafe_b64decode(SIGNING_SECRET + "=" * (-len(SIGNING_SECRET) % 4))


def test_token_headers_and_claims():
    client, _ = _client()
    token = client.generate_token(now=1700000000)

    header = jwt.get_unverified_header(token)
    assert header["alg"] == "HS256"
    assert header["dd-ver"] == "DD-JWT-V1"
    assert header["kid"] == "key-456"

    claims = jwt.decode(
        token,
        _secret_bytes(),
        algorithms=["HS256"],
        audience="doordash",
        options={"verify_exp": False, "verify_iat": False},
    )
    assert claims["iss"] == "dev-123"
    assert claims["kid"] == "key-456"
    assert claims["exp"] - claims["iat"] == 1800


def test_unconfigured_client_is_unavailable():
    client = DeliveryClient("", "", "", "https://doordash.test", http=FakeHTTP())
    assert client.is_configured() is False
    with pytest.raises(ProviderUnavailable):
        client.generate_token()


def test_quote_maps_provider_fields():
    client, http = _client(FakeResponse(200, {
        "external_delivery_id": "ext-1",
        "fee": 975,
        "dropoff_time_estimated": "2030-01-01T12:30:00Z",
    }))
    result = client.quote("1 Pickup St", "2 Dropoff Ave", 2500, "ext-1")

    assert result == {"fee": 975, "eta": "2030-01-01T12:30:00Z", "quote_id": "ext-1"}
    call = http.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://doordash.test/drive/v2/quotes"
    assert call["headers"]["Authorization"].startswith("Bearer ")
    assert call["json"]["order_value"] == 2500


def test_quote_requires_addresses():
    client, http = _client()
    with pytest.raises(InvalidAddress):
        client.quote("", "2 Dropoff Ave", 100, "ext-1")
    assert http.calls == []


def test_address_rejection_is_invalid_address():
    client, _ = _client(FakeResponse(422, {
        "code": "validation_error",
        "message": "dropoff_address could not be geocoded",
    }))
    with pytest.raises(InvalidAddress):
        client.quote("1 Pickup St", "nowhere", 100, "ext-1")


def test_server_error_and_transport_error_are_provider_unavailable():
    client, _ = _client(FakeResponse(503, {"message": "maintenance"}))
    with pytest.raises(ProviderUnavailable):
        client.get_status("ext-1")

    client, _ = _client(requests.ConnectionError("connection refused"))
    with pytest.raises(ProviderUnavailable):
        client.get_status("ext-1")


def test_other_client_errors_carry_provider_message():
    client, _ = _client(FakeResponse(403, {"message": "Forbidden developer"}))
    with pytest.raises(UpstreamFailure) as exc:
        client.cancel("ext-1")
    assert exc.value.message == "Forbidden developer"
    assert not isinstance(exc.value, ProviderUnavailable)


def test_create_delivery_requires_external_id():
    client, http = _client()
    with pytest.raises(InvalidInput):
        client.create_delivery({"order_value": 100})
    assert http.calls == []


def test_duplicate_create_returns_existing_delivery():
    client, http = _client(
        FakeResponse(409, {"code": "duplicate_delivery_id", "message": "already exists"}),
        FakeResponse(200, {
            "external_delivery_id": "ext-1",
            "delivery_status": "enroute_to_pickup",
            "tracking_url": "https://track.test/ext-1",
        }),
    )
    result = client.create_delivery({"external_delivery_id": "ext-1"})

    assert result == {
        "delivery_id": "ext-1",
        "tracking_url": "https://track.test/ext-1",
        "status": "enroute_to_pickup",
    }
    assert [c["method"] for c in http.calls] == ["POST", "GET"]


@pytest.fixture
def dispatched_order(app, employee):
    order = Order(
        user_id=employee.id,
        restaurant_id="rst_pizza",
        items=[{"id": "m1", "name": "Margherita"}],
        item_count=1,
        delivery_status="created",
        external_delivery_id="feedme_1700000000000_user_employee",
        delivery_id="feedme_1700000000000_user_employee",
        tracking_url="https://track.test/old",
    )
    db.session.add(order)
    db.session.commit()
    return order


def test_order_read_mirrors_live_status(client, employee, dispatched_order, delivery_client, auth_headers):
    delivery_client.statuses[dispatched_order.delivery_id] = {
        "status": "picked_up",
        "tracking_url": "https://track.test/new",
        "pickup_time_estimated": "2030-01-01T12:00:00Z",
        "dropoff_time_estimated": None,
    }
    res = client.get(f"/api/v1/orders/{dispatched_order.id}", headers=auth_headers(employee))

    assert res.status_code == 200
    body = res.get_json()
    assert body["live"] is True
    assert body["order"]["delivery_status"] == "picked_up"
    assert body["order"]["tracking_url"] == "https://track.test/new"


def test_order_read_falls_back_to_cached_status(client, employee, dispatched_order, delivery_client, auth_headers):
    delivery_client.fail_with = ProviderUnavailable("timeout")
    res = client.get(f"/api/v1/orders/{dispatched_order.id}", headers=auth_headers(employee))

    assert res.status_code == 200
    body = res.get_json()
    assert body["live"] is False
    assert body["order"]["delivery_status"] == "created"
    assert body["order"]["tracking_url"] == "https://track.test/old"


def _post_webhook(client, payload, secret=WEBHOOK_SECRET):
    body = json.dumps(payload).encode()
    return client.post(
        "/api/v1/webhooks/doordash",
        data=body,
        content_type="application/json",
        headers={"X-DoorDash-Signature": sign_body(secret, body)},
    )


def test_delivery_webhook_updates_order(client, dispatched_order):
    res = _post_webhook(client, {
        "event_name": "DASHER_DROPPED_OFF",
        "external_delivery_id": dispatched_order.external_delivery_id,
        "delivery_status": "delivered",
        "dropoff_time": "2030-01-01T12:45:00Z",
    })
    assert res.status_code == 200
    assert res.get_json()["matched"] is True

    order = db.session.get(Order, dispatched_order.id)
    assert order.delivery_status == "delivered"
    assert order.dropoff_time.hour == 12


def test_delivery_webhook_rejects_bad_signature(client, dispatched_order):
    res = _post_webhook(client, {
        "external_delivery_id": dispatched_order.external_delivery_id,
        "delivery_status": "cancelled",
    }, secret="wrong")
    assert res.status_code == 400
    assert db.session.get(Order, dispatched_order.id).delivery_status == "created"


def test_delivery_webhook_verification_can_be_disabled(app, client, dispatched_order):
    app.config["DOORDASH_WEBHOOK_VERIFY"] = False
    res = client.post("/api/v1/webhooks/doordash", json={
        "external_delivery_id": dispatched_order.external_delivery_id,
        "delivery_status": "enroute_to_dropoff",
    })
    assert res.status_code == 200
    assert db.session.get(Order, dispatched_order.id).delivery_status == "enroute_to_dropoff"


def test_delivery_webhook_unknown_id_is_dropped(client):
    res = _post_webhook(client, {"external_delivery_id": "feedme_0_nobody", "delivery_status": "delivered"})
    assert res.status_code == 200
    assert res.get_json()["matched"] is False


def test_delivery_webhook_challenge_is_echoed(client):
    res = client.get("/api/v1/webhooks/doordash?challenge=abc123")
    assert res.status_code == 200
    assert res.get_data(as_text=True) == "abc123"


def test_delivery_endpoints_use_configured_client(client, employee, delivery_client, auth_headers):
    headers = auth_headers(employee)

    res = client.post("/api/v1/deliveries/quote", json={
        "external_delivery_id": "ext-9",
        "pickup_address": "1 Pickup St",
        "dropoff_address": "2 Dropoff Ave",
        "order_value": 1200,
    }, headers=headers)
    assert res.status_code == 200
    assert res.get_json()["quote"]["fee"] == 975

    res = client.post("/api/v1/deliveries", json={"external_delivery_id": "ext-9"}, headers=headers)
    assert res.status_code == 201
    assert res.get_json()["delivery"]["delivery_id"] == "ext-9"

    res = client.post("/api/v1/deliveries/ext-9/cancel", headers=headers)
    assert res.get_json()["delivery"] == {"cancelled": True, "status": "cancelled"}
    assert delivery_client.cancelled == ["ext-9"]


def test_delivery_status_serves_cached_order_on_outage(
    client, employee, dispatched_order, delivery_client, auth_headers
):
    delivery_client.fail_with = ProviderUnavailable("timeout")
    res = client.get(f"/api/v1/deliveries/{dispatched_order.delivery_id}", headers=auth_headers(employee))

    assert res.status_code == 200
    body = res.get_json()
    assert body["live"] is False
    assert body["delivery"]["status"] == "created"
    assert body["delivery"]["tracking_url"] == "https://track.test/old"
    assert body["order"]["id"] == dispatched_order.id


def test_delivery_status_updates_cached_order(
    client, employee, dispatched_order, delivery_client, auth_headers
):
    delivery_client.statuses[dispatched_order.delivery_id] = {
        "status": "enroute_to_dropoff",
        "tracking_url": "https://track.test/live",
        "dropoff_time_estimated": "2030-01-01T12:40:00Z",
    }
    res = client.get(f"/api/v1/deliveries/{dispatched_order.delivery_id}", headers=auth_headers(employee))

    assert res.status_code == 200
    body = res.get_json()
    assert body["live"] is True
    assert body["delivery"]["status"] == "enroute_to_dropoff"
    assert body["delivery"]["dropoff_time_estimated"] == "2030-01-01T12:40:00Z"

    order = db.session.get(Order, dispatched_order.id)
    assert order.delivery_status == "enroute_to_dropoff"
    assert order.tracking_url == "https://track.test/live"


def test_delivery_status_without_cached_order_surfaces_outage(
    client, manager, dispatched_order, delivery_client, auth_headers
):
    delivery_client.fail_with = ProviderUnavailable()

    res = client.get("/api/v1/deliveries/ext-1", headers=auth_headers(manager))
    assert res.status_code == 500
    assert res.get_json()["code"] == "PROVIDER_UNAVAILABLE"

    # another user's order is not served from cache
    res = client.get(f"/api/v1/deliveries/{dispatched_order.delivery_id}", headers=auth_headers(manager))
    assert res.status_code == 500
    assert res.get_json()["code"] == "PROVIDER_UNAVAILABLE"
