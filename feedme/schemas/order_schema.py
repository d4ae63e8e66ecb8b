from feedme.extensions import ma
from marshmallow import fields


class OrderSchema(ma.Schema):
    id = fields.Str()
    user_id = fields.Str()
    user_name = fields.Str(allow_none=True)
    restaurant_id = fields.Str()
    items = fields.Raw()
    item_count = fields.Int()
    status = fields.Str()
    food_amount = fields.Int(allow_none=True)
    service_fee = fields.Int(allow_none=True)
    platform_fee = fields.Int(allow_none=True)
    delivery_fee = fields.Int(allow_none=True)
    total_amount = fields.Int(allow_none=True)
    payment_intent_id = fields.Str(allow_none=True)
    payment_status = fields.Str()
    delivery_status = fields.Str()
    external_delivery_id = fields.Str()
    delivery_id = fields.Str(allow_none=True)
    tracking_url = fields.Str(allow_none=True)
    pickup_time = fields.DateTime(allow_none=True)
    dropoff_time = fields.DateTime(allow_none=True)
    pickup_time_estimated = fields.DateTime(allow_none=True)
    dropoff_time_estimated = fields.DateTime(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
