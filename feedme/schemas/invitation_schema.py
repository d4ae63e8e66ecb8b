from feedme.extensions import ma
from marshmallow import fields, validate


class InvitationSchema(ma.Schema):
    id = fields.Str()
    company_id = fields.Str()
    company_name = fields.Str()
    invite_code = fields.Str()
    role = fields.Str()
    created_by = fields.Str()
    expires_at = fields.DateTime()
    max_uses = fields.Int()
    used_count = fields.Int()
    used_by = fields.List(fields.Str())
    is_active = fields.Bool()
    created_at = fields.DateTime()


class InvitationCreateSchema(ma.Schema):
    companyId = fields.Str(required=True, validate=validate.Length(min=1))
    companyName = fields.Str(required=True, validate=validate.Length(min=1))
    maxUses = fields.Int(load_default=1, validate=validate.Range(min=1))
    expiresInDays = fields.Int(load_default=7, validate=validate.Range(min=1))
    role = fields.Str(load_default="employee", validate=validate.OneOf(("employee", "manager", "admin")))
