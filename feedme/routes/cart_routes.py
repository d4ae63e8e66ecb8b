from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from feedme.services.cart_service import CartStore, DatabaseCartPort
from feedme.utils.auth_utils import current_user_or_404
from feedme.utils.exceptions import InvalidInput
from feedme.utils.response_formatter import success_response

bp = Blueprint("cart", __name__, url_prefix="/api/v1/cart")


def _cart():
    return CartStore(DatabaseCartPort(), current_user_or_404().id)


@bp.route("", methods=["GET"])
@jwt_required()
def get_cart():
    return success_response({"cart": _cart().to_dict()})


@bp.route("", methods=["POST"])
@jwt_required()
def add_item():
    cart = _cart()
    cart.add_item(request.get_json(silent=True) or {})
    return success_response({"cart": cart.to_dict()})


@bp.route("", methods=["PATCH"])
@jwt_required()
def update_item():
    data = request.get_json(silent=True) or {}
    if not data.get("id") or "quantity" not in data:
        raise InvalidInput("id and quantity are required")
    try:
        quantity = int(data["quantity"])
    except (TypeError, ValueError):
        raise InvalidInput("quantity must be an integer")
    cart = _cart()
    cart.update_quantity(data["id"], quantity)
    return success_response({"cart": cart.to_dict()})


@bp.route("", methods=["DELETE"])
@jwt_required()
def remove_or_clear():
    cart = _cart()
    item_id = request.args.get("id")
    if item_id:
        cart.remove_item(item_id)
    else:
        cart.clear()
    return success_response({"cart": cart.to_dict()})
