from feedme.extensions import ma
from marshmallow import fields


class ParticipantSchema(ma.Schema):
    user_id = fields.Str()
    user_name = fields.Str(allow_none=True)
    status = fields.Str()
    preset_order = fields.Raw(allow_none=True)
    updated_at = fields.DateTime()


class OrderSessionSchema(ma.Schema):
    id = fields.Str()
    company_id = fields.Str()
    restaurant_name = fields.Str()
    restaurant_options = fields.Raw()
    start_time = fields.DateTime()
    end_time = fields.DateTime()
    status = fields.Str()
    doordash_group_link = fields.Str(allow_none=True)
    created_by = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
    participants = fields.List(fields.Nested(ParticipantSchema))
