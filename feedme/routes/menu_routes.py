from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from feedme.services.menu_service import get_menu, list_restaurants, scrape_and_store
from feedme.utils.auth_utils import current_user_or_404
from feedme.utils.exceptions import InvalidInput
from feedme.utils.response_formatter import success_response

bp = Blueprint("menus", __name__, url_prefix="/api/v1")


@bp.route("/menus/check", methods=["GET"])
def check_menu():
    place_id = request.args.get("placeId")
    if not place_id:
        raise InvalidInput("placeId is required")
    document = get_menu(place_id, scrape_url=request.args.get("url"))
    return success_response({
        "placeId": place_id,
        "hasMenu": document is not None,
        "menu": document,
    })


@bp.route("/menus/scrape", methods=["POST"])
@jwt_required()
def scrape():
    current_user_or_404()
    data = request.get_json(silent=True) or {}
    restaurant, document = scrape_and_store(data.get("restaurantName"), data.get("restaurantUrl"))
    return success_response({
        "menu": document,
        "restaurantId": restaurant.place_id if restaurant else None,
    })


@bp.route("/restaurants", methods=["GET"])
def restaurants():
    rows = list_restaurants(request.args.get("search"))
    return success_response({
        "restaurants": [
            {
                "id": r.id,
                "place_id": r.place_id,
                "name": r.name,
                "address": r.address,
                "website": r.website,
                "rating": r.rating,
                "price_level": r.price_level,
                "cuisine_types": r.cuisine_types or [],
                "has_menu": r.has_menu_data(),
            }
            for r in rows
        ]
    })
