from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from feedme.models.order import Order
from feedme.schemas.order_schema import OrderSchema
from feedme.services.delivery_service import (
    dispatch_pending_handoffs,
    get_delivery_client,
    refresh_delivery_status,
)
from feedme.utils.auth_utils import current_user_or_404, require_roles
from feedme.utils.exceptions import InvalidInput
from feedme.utils.response_formatter import success_response
from feedme.utils.timeutils import isoformat

bp = Blueprint("deliveries", __name__, url_prefix="/api/v1/deliveries")

order_schema = OrderSchema()


@bp.route("/quote", methods=["POST"])
@jwt_required()
def quote():
    current_user_or_404()
    data = request.get_json(silent=True) or {}
    if not data.get("external_delivery_id"):
        raise InvalidInput("external_delivery_id is required")
    result = get_delivery_client().quote(
        data.get("pickup_address"),
        data.get("dropoff_address"),
        data.get("order_value"),
        data["external_delivery_id"],
    )
    return success_response({"quote": result})


@bp.route("", methods=["POST"])
@jwt_required()
def create():
    current_user_or_404()
    result = get_delivery_client().create_delivery(request.get_json(silent=True) or {})
    return success_response({"delivery": result}, status=201)


@bp.route("/<delivery_id>", methods=["GET"])
@jwt_required()
def status(delivery_id):
    user = current_user_or_404()
    order = Order.query.filter_by(delivery_id=delivery_id, user_id=user.id).first()
    if order is None:
        return success_response({"delivery": get_delivery_client().get_status(delivery_id)})

    order, refreshed = refresh_delivery_status(order)
    delivery = {
        "delivery_id": order.delivery_id,
        "status": order.delivery_status,
        "tracking_url": order.tracking_url,
        "pickup_time_estimated": isoformat(order.pickup_time_estimated),
        "dropoff_time_estimated": isoformat(order.dropoff_time_estimated),
    }
    return success_response({"delivery": delivery, "order": order_schema.dump(order), "live": refreshed})


@bp.route("/<delivery_id>/cancel", methods=["POST"])
@jwt_required()
def cancel(delivery_id):
    current_user_or_404()
    return success_response({"delivery": get_delivery_client().cancel(delivery_id)})


@bp.route("/dispatch", methods=["POST"])
@jwt_required()
def dispatch():
    user = current_user_or_404()
    require_roles(user, "admin", message="Only admins can dispatch deliveries")
    return success_response(dispatch_pending_handoffs())
