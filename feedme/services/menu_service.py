import logging
import re

from flask import current_app

from feedme.extensions import db
from feedme.models.restaurant import Restaurant
from feedme.services.delivery_service import get_delivery_client
from feedme.utils.exceptions import InvalidInput, ServiceError
from feedme.utils.timeutils import isoformat, utcnow

logger = logging.getLogger(__name__)

PARTNER_PREFIX = "dd_"


def get_scraper():
    return current_app.extensions["menu_scraper"]


def _categories(menu):
    if not menu:
        return []
    if isinstance(menu, list):
        return menu
    categories = menu.get("categories") or []
    if not categories and menu.get("items"):
        categories = [{"name": "Menu", "items": menu["items"]}]
    return categories


def build_menu_document(restaurant_name, categories, source, restaurant_url=None, success=True):
    categories = categories or []
    items = []
    for category in categories:
        for item in category.get("items") or []:
            items.append({**item, "category": item.get("category") or category.get("name")})
    return {
        "restaurant_name": restaurant_name,
        "restaurant_url": restaurant_url,
        "categories": categories,
        "items": items,
        "scraped_at": isoformat(utcnow()),
        "success": success,
        "source": source,
    }


def scraped_place_id(name):
    return "scraped_" + re.sub(r"\s+", "_", name.strip().lower())


def _local(place_id):
    return Restaurant.query.filter_by(place_id=place_id).first()


def resolve_restaurant_name(place_id, local=None):
    if local is not None:
        return local.name
    for prefix, name in current_app.config.get("KNOWN_PLACE_PREFIXES", {}).items():
        if place_id.startswith(prefix):
            return name
    return None


def _merged(place_id, name):
    candidates = (
        Restaurant.query
        .filter(db.func.lower(Restaurant.name) == name.lower(), Restaurant.is_active.is_(True))
        .order_by(Restaurant.updated_at.desc())
        .all()
    )
    for candidate in candidates:
        if candidate.has_menu_data():
            return build_menu_document(
                candidate.name,
                _categories(candidate.menu),
                "merged",
                restaurant_url=f"https://maps.google.com/?cid={place_id}",
            )
    return None


def _partner(place_id):
    client = get_delivery_client()
    if not client.is_configured():
        return None
    try:
        menu = client.get_merchant_menu(place_id)
    except ServiceError as e:
        logger.warning("Partner menu lookup failed for %s: %s", place_id, e.message)
        return None
    categories = _categories(menu)
    if not categories:
        return None
    return build_menu_document(
        menu.get("name") or place_id,
        categories,
        "doordash",
        restaurant_url=f"https://doordash.com/store/{place_id}",
    )


def scrape_and_store(name, url):
    if not name or not url:
        raise InvalidInput("restaurantName and restaurantUrl are required")

    categories = get_scraper().scrape(url)
    if not categories:
        return None, build_menu_document(name, [], "scraped", restaurant_url=url, success=False)

    place_id = scraped_place_id(name)
    restaurant = _local(place_id)
    if restaurant is None:
        restaurant = Restaurant(
            place_id=place_id,
            name=name,
            address="Scraped from web",
            cuisine_types=["scraped"],
            is_active=True,
        )
        db.session.add(restaurant)
    restaurant.website = url
    restaurant.menu = {"categories": categories}
    restaurant.updated_at = utcnow()
    db.session.commit()

    logger.info("Stored %d scraped categories for %s", len(categories), name)
    return restaurant, build_menu_document(name, categories, "scraped", restaurant_url=url)


def get_menu(place_id, scrape_url=None, allow_scrape=True):
    """Resolve a menu document for ``place_id`` or return ``None``."""
    if not place_id:
        return None

    local = _local(place_id)
    if local is not None and local.has_menu_data():
        return build_menu_document(local.name, _categories(local.menu), "local",
                                   restaurant_url=local.website)

    if place_id.startswith(PARTNER_PREFIX):
        document = _partner(place_id)
        if document:
            return document

    name = resolve_restaurant_name(place_id, local)
    if name:
        document = _merged(place_id, name)
        if document:
            return document

    url = scrape_url or (local.website if local is not None else None)
    if allow_scrape and name and url:
        try:
            _, document = scrape_and_store(name, url)
        except ServiceError as e:
            logger.warning("On-demand scrape failed for %s: %s", place_id, e.message)
            return None
        if document["success"]:
            return document

    return None


def has_menu(place_id):
    return get_menu(place_id, allow_scrape=False) is not None


def list_restaurants(search=None, limit=100):
    q = Restaurant.query.filter(Restaurant.is_active.is_(True))
    if search:
        q = q.filter(Restaurant.name.ilike(f"%{search}%"))
    return q.order_by(Restaurant.name).limit(limit).all()
