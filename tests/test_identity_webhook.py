import json
import time

from feedme.extensions import db
from feedme.models.organization import Organization
from feedme.models.user import User
from feedme.utils.webhook_signing import sign_svix, verify_svix

SECRET = "whsec_Y2xlcmstdGVzdC1zZWNyZXQ="
URL = "/api/v1/webhooks/clerk"


def _post(client, event, secret=SECRET, msg_id="msg_1", timestamp=None):
    body = json.dumps(event).encode()
    ts = int(timestamp if timestamp is not None else time.time())
    return client.post(
        URL,
        data=body,
        content_type="application/json",
        headers={
            "svix-id": msg_id,
            "svix-timestamp": str(ts),
            "svix-signature": sign_svix(secret, msg_id, ts, body),
        },
    )


def _user_created(uid="user_clerk", **metadata):
    return {
        "type": "user.created",
        "data": {
            "id": uid,
            "first_name": "Ada",
            "last_name": "Lovelace",
            "image_url": "https://img.test/ada.png",
            "email_addresses": [{"email_address": "ada@example.com"}],
            "public_metadata": metadata,
        },
    }


def test_user_created_inserts_user(client, app):
    res = _post(client, _user_created(role="manager"))
    assert res.status_code == 200
    assert res.get_json()["userId"] == "user_clerk"

    user = db.session.get(User, "user_clerk")
    assert user.email == "ada@example.com"
    assert user.role == "manager"
    assert user.company_id is None


def test_user_created_with_company_name_creates_organization(client, app):
    res = _post(client, _user_created(companyId="org_from_signup", companyName="Signup Co"))
    assert res.status_code == 200

    org = db.session.get(Organization, "org_from_signup")
    assert org.name == "Signup Co"
    assert db.session.get(User, "user_clerk").company_id == "org_from_signup"


def test_invalid_role_falls_back_to_employee(client, app):
    _post(client, _user_created(role="superuser"))
    assert db.session.get(User, "user_clerk").role == "employee"


def test_user_updated_changes_role_and_email(client, employee):
    event = {
        "type": "user.updated",
        "data": {
            "id": employee.id,
            "email_addresses": [{"email_address": "promoted@example.com"}],
            "public_metadata": {"role": "Manager"},
        },
    }
    assert _post(client, event).status_code == 200

    user = db.session.get(User, employee.id)
    assert user.role == "manager"
    assert user.email == "promoted@example.com"
    assert user.first_name == "Employee"


def test_unsigned_or_forged_events_are_rejected(client, app):
    res = client.post(URL, json=_user_created())
    assert res.status_code == 400

    res = _post(client, _user_created(), secret="whsec_b3RoZXItc2VjcmV0")
    assert res.status_code == 400
    assert db.session.get(User, "user_clerk") is None


def test_svix_verification_accepts_any_listed_signature():
    body = b'{"type": "user.deleted"}'
    ts = int(time.time())
    good = sign_svix(SECRET, "msg_9", ts, body)
    verify_svix(SECRET, body, "msg_9", str(ts), f"v1,bm90LWl0 {good}")
