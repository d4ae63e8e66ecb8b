from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from feedme.schemas.order_schema import OrderSchema
from feedme.services.delivery_service import refresh_delivery_status
from feedme.services.order_service import (
    clear_orders,
    create_order,
    get_order,
    list_orders_query,
)
from feedme.utils.auth_utils import current_user_or_404
from feedme.utils.pagination import paginate_query
from feedme.utils.response_formatter import success_response

bp = Blueprint("orders", __name__, url_prefix="/api/v1/orders")

order_schema = OrderSchema()
orders_schema = OrderSchema(many=True)


@bp.route("", methods=["GET"])
@jwt_required()
def list_orders():
    user = current_user_or_404()
    items, pagination = paginate_query(
        list_orders_query(user), request.args.get("page"), request.args.get("limit")
    )
    return success_response({"orders": orders_schema.dump(items), "pagination": pagination})


@bp.route("", methods=["POST"])
@jwt_required()
def create():
    user = current_user_or_404()
    order = create_order(user, request.get_json(silent=True) or {})
    return success_response({"order": order_schema.dump(order)}, "Order created", status=201)


@bp.route("", methods=["DELETE"])
@jwt_required()
def clear():
    deleted = clear_orders(current_user_or_404())
    return success_response({"deleted": deleted}, "All orders cleared")


@bp.route("/<order_id>", methods=["GET"])
@jwt_required()
def detail(order_id):
    order = get_order(order_id, current_user_or_404())
    order, refreshed = refresh_delivery_status(order)
    return success_response({"order": order_schema.dump(order), "live": refreshed})
