from feedme.extensions import ma
from marshmallow import fields


class UserSchema(ma.Schema):
    id = fields.Str()
    email = fields.Str(allow_none=True)
    first_name = fields.Str(allow_none=True)
    last_name = fields.Str(allow_none=True)
    role = fields.Str()
    company_id = fields.Str(allow_none=True)
    profile_image_url = fields.Str(allow_none=True)
    created_at = fields.DateTime()


class OrganizationSchema(ma.Schema):
    id = fields.Str()
    name = fields.Str()
    logo_url = fields.Str(allow_none=True)
    created_by = fields.Str(allow_none=True)
    created_at = fields.DateTime()
    updated_at = fields.DateTime()
