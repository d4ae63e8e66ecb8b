from feedme.extensions import db
from feedme.models.cart import Cart
from feedme.utils.exceptions import InvalidInput, NotFound
from feedme.utils.timeutils import utcnow


class MemoryCartPort:
    def __init__(self):
        self._data = {}

    def get(self, key):
        return [dict(i) for i in self._data.get(key, [])]

    def put(self, key, value):
        self._data[key] = [dict(i) for i in value]


class DatabaseCartPort:
    def get(self, key):
        cart = db.session.get(Cart, key)
        # detached copies, CartStore edits lines in place
        return [dict(i) for i in cart.items or []] if cart else []

    def put(self, key, value):
        cart = db.session.get(Cart, key)
        if cart is None:
            cart = Cart(user_id=key)
            db.session.add(cart)
        cart.items = [dict(i) for i in value]
        cart.updated_at = utcnow()
        db.session.commit()


def _line(item):
    if not item.get("id") or not item.get("name"):
        raise InvalidInput("Cart items need an id and a name")
    try:
        quantity = int(item.get("quantity", 1))
        base_price = int(item.get("base_price", 0))
    except (TypeError, ValueError):
        raise InvalidInput("quantity and base_price must be integers")
    if quantity <= 0:
        raise InvalidInput("quantity must be positive")
    return {**item, "quantity": quantity, "base_price": base_price,
            "total_price": base_price * quantity}


class CartStore:
    """A user's cart, persisted through ``port`` after every change."""

    def __init__(self, port, key):
        self.port = port
        self.key = key
        self.items = port.get(key)

    def _save(self):
        self.port.put(self.key, self.items)
        return self.items

    def add_item(self, item):
        new = _line(item)
        for existing in self.items:
            if existing["id"] == new["id"]:
                existing["quantity"] += new["quantity"]
                existing["total_price"] = existing["base_price"] * existing["quantity"]
                return self._save()
        self.items.append(new)
        return self._save()

    def update_quantity(self, item_id, quantity):
        if quantity <= 0:
            return self.remove_item(item_id)
        for existing in self.items:
            if existing["id"] == item_id:
                existing["quantity"] = quantity
                existing["total_price"] = existing["base_price"] * quantity
                return self._save()
        raise NotFound("Cart item not found")

    def remove_item(self, item_id):
        self.items = [i for i in self.items if i["id"] != item_id]
        return self._save()

    def clear(self):
        self.items = []
        return self._save()

    def total_items(self):
        return sum(i["quantity"] for i in self.items)

    def total_price(self):
        return sum(i["total_price"] for i in self.items)

    def to_dict(self):
        return {
            "items": self.items,
            "total_items": self.total_items(),
            "total_price": self.total_price(),
        }
