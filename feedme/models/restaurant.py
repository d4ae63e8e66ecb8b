from feedme.extensions import db
from feedme.utils.timeutils import utcnow
import uuid


def gen_restaurant_id():
    return f"rst_{uuid.uuid4().hex[:16]}"


class Restaurant(db.Model):
    __tablename__ = "restaurants"

    id = db.Column(db.String(64), primary_key=True, default=gen_restaurant_id)
    place_id = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False, index=True)
    address = db.Column(db.String(512))
    website = db.Column(db.String(1024))
    lat = db.Column(db.Float, default=0)
    lng = db.Column(db.Float, default=0)
    rating = db.Column(db.Float)
    price_level = db.Column(db.Integer)
    cuisine_types = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True)
    # {"categories": [{"name": ..., "items": [...]}]}
    menu = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def has_menu_data(self):
        menu = self.menu or {}
        if isinstance(menu, list):
            return bool(menu)
        return bool(menu.get("categories") or menu.get("items"))
