"""Shared fixtures: an app on in-memory SQLite, users, and fake providers."""
from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from feedme.extensions import db
from feedme.main import create_app
from feedme.models.order_session import OrderSession, OrderSessionParticipant
from feedme.models.organization import Organization
from feedme.models.user import User
from feedme.utils.exceptions import ProviderUnavailable
from feedme.utils.timeutils import utcnow


class FakeDeliveryClient:
    def __init__(self):
        self.configured = True
        self.menus = {}
        self.statuses = {}
        self.created = []
        self.cancelled = []
        self.fail_with = None

    def is_configured(self):
        return self.configured

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def quote(self, pickup, dropoff, order_value, external_delivery_id):
        self._maybe_fail()
        return {"fee": 975, "eta": "2030-01-01T12:30:00Z", "quote_id": external_delivery_id}

    def create_delivery(self, payload):
        self._maybe_fail()
        self.created.append(payload)
        external_id = payload["external_delivery_id"]
        return {
            "delivery_id": external_id,
            "tracking_url": f"https://track.test/{external_id}",
            "status": "created",
        }

    def get_status(self, delivery_id):
        self._maybe_fail()
        if delivery_id not in self.statuses:
            raise ProviderUnavailable("unknown delivery")
        return self.statuses[delivery_id]

    def cancel(self, delivery_id):
        self._maybe_fail()
        self.cancelled.append(delivery_id)
        return {"cancelled": True, "status": "cancelled"}

    def get_merchant_menu(self, merchant_id):
        self._maybe_fail()
        return self.menus.get(merchant_id, {})


class FakeScraper:
    def __init__(self):
        self.pages = {}
        self.calls = []

    def scrape(self, url):
        self.calls.append(url)
        return self.pages.get(url, [])


@pytest.fixture
def app():
    app = create_app("testing")
    app.extensions["delivery_client"] = FakeDeliveryClient()
    app.extensions["menu_scraper"] = FakeScraper()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def delivery_client(app):
    return app.extensions["delivery_client"]


@pytest.fixture
def scraper(app):
    return app.extensions["menu_scraper"]


@pytest.fixture
def company(app):
    org = Organization(id="org_acme", name="Acme Corp", created_by="user_admin")
    db.session.add(org)
    db.session.commit()
    return org


@pytest.fixture
def make_user(app):
    def _make(uid, role="employee", company=None, email=None, first_name=None, last_name="Tester"):
        user = User(
            id=uid,
            email=email or f"{uid}@example.com",
            first_name=first_name or uid.split("_")[-1].title(),
            last_name=last_name,
            role=role,
            company_id=company.id if company is not None else None,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def manager(make_user, company):
    return make_user("user_manager", role="manager", company=company)


@pytest.fixture
def employee(make_user, company):
    return make_user("user_employee", role="employee", company=company)


@pytest.fixture
def admin(make_user, company):
    return make_user("user_admin", role="admin", company=company)


@pytest.fixture
def auth_headers(app):
    def _headers(user, **claims):
        token = create_access_token(identity=user.id, additional_claims=claims or None)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_session(app):
    def _make(company, members=(), status="active", starts_in=-60, ends_in=60):
        now = utcnow()
        session = OrderSession(
            company_id=company.id,
            restaurant_name="Pizza Palace",
            restaurant_options=["Pizza Palace", "Taco Town"],
            start_time=now + timedelta(minutes=starts_in),
            end_time=now + timedelta(minutes=ends_in),
            status=status,
        )
        db.session.add(session)
        db.session.flush()
        for member in members:
            db.session.add(OrderSessionParticipant(
                session_id=session.id,
                user_id=member.id,
                user_name=member.display_name,
                status="pending",
            ))
        db.session.commit()
        return session

    return _make
