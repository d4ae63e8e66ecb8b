from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from feedme.schemas.user_schema import OrganizationSchema, UserSchema
from feedme.services.membership_service import (
    company_members,
    create_company,
    get_company,
    update_company,
)
from feedme.utils.auth_utils import current_user_or_404
from feedme.utils.response_formatter import success_response

bp = Blueprint("companies", __name__, url_prefix="/api/v1/companies")

org_schema = OrganizationSchema()
members_schema = UserSchema(many=True)


@bp.route("", methods=["GET"])
@jwt_required()
def my_company():
    user = current_user_or_404()
    org = get_company(user)
    if org is None:
        return success_response({"company": None, "members": []})
    return success_response({
        "company": org_schema.dump(org),
        "members": members_schema.dump(company_members(org.id)),
    })


@bp.route("", methods=["POST"])
@jwt_required()
def create():
    user = current_user_or_404()
    data = request.get_json(silent=True) or {}
    org, repaired = create_company(user, data.get("name"), data.get("logo_url"))
    message = "Company created (replaced missing company)" if repaired else "Company created"
    return success_response(
        {"company": org_schema.dump(org), "repaired": repaired}, message, status=201
    )


@bp.route("/<company_id>", methods=["PUT"])
@jwt_required()
def update(company_id):
    user = current_user_or_404()
    data = request.get_json(silent=True) or {}
    org = update_company(user, company_id, data.get("name"), data.get("logo_url"))
    return success_response({"company": org_schema.dump(org)}, "Company updated")
