import json

from flask import Blueprint, current_app, request

from feedme.services.delivery_service import apply_delivery_event
from feedme.services.membership_service import upsert_user_from_identity
from feedme.services.payment_service import reconcile_payment_event
from feedme.utils.exceptions import InvalidInput
from feedme.utils.response_formatter import success_response
from feedme.utils.webhook_signing import verify_body, verify_stripe, verify_svix

bp = Blueprint("webhooks", __name__, url_prefix="/api/v1/webhooks")


def _json_body(body):
    try:
        return json.loads(body or b"{}")
    except ValueError:
        raise InvalidInput("Webhook body is not valid JSON")


@bp.route("/stripe", methods=["POST"])
def stripe_webhook():
    body = request.get_data()
    verify_stripe(
        current_app.config["STRIPE_WEBHOOK_SECRET"],
        body,
        request.headers.get("Stripe-Signature"),
        tolerance=current_app.config["WEBHOOK_TOLERANCE_SECONDS"],
    )
    result = reconcile_payment_event(_json_body(body))
    return success_response({"received": True, **result})


@bp.route("/doordash", methods=["GET"])
def doordash_challenge():
    challenge = request.args.get("challenge")
    if challenge:
        return challenge, 200, {"Content-Type": "text/plain"}
    return success_response({"status": "ok"})


@bp.route("/doordash", methods=["POST"])
def doordash_webhook():
    body = request.get_data()
    if current_app.config["DOORDASH_WEBHOOK_VERIFY"]:
        verify_body(
            current_app.config["DOORDASH_WEBHOOK_SECRET"],
            body,
            request.headers.get("X-DoorDash-Signature"),
        )
    payload = _json_body(body)
    current_app.logger.info("Delivery webhook: %s", payload.get("event_name"))
    order = apply_delivery_event(payload)
    return success_response({"received": True, "matched": order is not None})


@bp.route("/clerk", methods=["POST"])
def clerk_webhook():
    body = request.get_data()
    verify_svix(
        current_app.config["CLERK_WEBHOOK_SECRET"],
        body,
        request.headers.get("svix-id"),
        request.headers.get("svix-timestamp"),
        request.headers.get("svix-signature"),
        tolerance=current_app.config["WEBHOOK_TOLERANCE_SECONDS"],
    )
    event = _json_body(body)
    current_app.logger.info("Identity webhook: %s", event.get("type"))
    user = upsert_user_from_identity(event.get("type"), event.get("data") or {})
    return success_response({"received": True, "userId": user.id if user else None})
