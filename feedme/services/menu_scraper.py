import json
import logging
import re

import requests

from feedme.utils.exceptions import InvalidInput, UpstreamFailure

logger = logging.getLogger(__name__)

JSON_LD_RE = re.compile(
    r'<script[^>]+type=["\']application/ld\+json["\'][^>]*>(.*?)</script>',
    re.IGNORECASE | re.DOTALL,
)
PRICE_RE = re.compile(r"\d+(?:\.\d+)?")


def _as_list(value):
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _types(node):
    return {t.lower() for t in _as_list(node.get("@type")) if isinstance(t, str)}


def _price(offers):
    for offer in _as_list(offers):
        raw = offer.get("price") if isinstance(offer, dict) else offer
        if raw is None:
            continue
        match = PRICE_RE.search(str(raw))
        if match:
            return round(float(match.group()), 2)
    return None


def _walk(node):
    if isinstance(node, dict):
        yield node
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for value in node:
            yield from _walk(value)


def _normalize_item(node, category, index):
    image = node.get("image")
    if isinstance(image, dict):
        image = image.get("url")
    elif isinstance(image, list):
        image = image[0] if image else None
    return {
        "id": node.get("@id") or f"{category.lower().replace(' ', '_')}_{index}",
        "name": node.get("name", "").strip(),
        "description": (node.get("description") or "").strip(),
        "price": _price(node.get("offers")),
        "category": category,
        "image_url": image,
        "is_available": True,
    }


def parse_menu_html(html):
    """Extract menu categories from schema.org JSON-LD blocks in a page."""
    categories = []
    for raw in JSON_LD_RE.findall(html or ""):
        try:
            doc = json.loads(raw.strip())
        except ValueError:
            continue
        for node in _walk(doc):
            if "menusection" not in _types(node):
                continue
            name = (node.get("name") or "Menu").strip()
            items = [
                _normalize_item(item, name, i)
                for i, item in enumerate(_as_list(node.get("hasMenuItem")))
                if isinstance(item, dict) and item.get("name")
            ]
            if items:
                categories.append({"name": name, "items": items})
    return categories


class MenuScraper:
    def __init__(self, timeout=15, http=None):
        self.timeout = timeout
        self.http = http or requests.Session()

    def fetch(self, url):
        if not url or not url.startswith(("http://", "https://")):
            raise InvalidInput("A http(s) restaurant URL is required")
        try:
            res = self.http.get(url, timeout=self.timeout, headers={"User-Agent": "feedme-menu/1.0"})
            res.raise_for_status()
        except requests.RequestException as e:
            logger.error("Menu fetch failed for %s: %s", url, e)
            raise UpstreamFailure(f"Menu fetch failed: {e}")
        return res.text

    def scrape(self, url):
        return parse_menu_html(self.fetch(url))
