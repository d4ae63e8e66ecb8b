from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from marshmallow import ValidationError

from feedme.schemas.invitation_schema import InvitationCreateSchema, InvitationSchema
from feedme.services.invitation_service import (
    create_invitation,
    delete_invitation,
    list_invitations,
    redeem_invitation,
)
from feedme.utils.auth_utils import current_user_or_404
from feedme.utils.exceptions import InvalidInput
from feedme.utils.response_formatter import success_response

bp = Blueprint("invitations", __name__, url_prefix="/api/v1/invitations")

invitation_schema = InvitationSchema()
invitations_schema = InvitationSchema(many=True)
create_schema = InvitationCreateSchema()


@bp.route("", methods=["GET"])
@jwt_required()
def list_mine():
    user = current_user_or_404()
    company_id = request.args.get("companyId") or user.company_id
    invitations = list_invitations(company_id, user)
    return success_response({"invitations": invitations_schema.dump(invitations)})


@bp.route("", methods=["POST"])
@jwt_required()
def create():
    user = current_user_or_404()
    try:
        data = create_schema.load(request.get_json(silent=True) or {})
    except ValidationError as e:
        raise InvalidInput("Company ID and name are required", e.messages)

    invitation = create_invitation(
        data["companyId"],
        data["companyName"],
        user,
        max_uses=data["maxUses"],
        expires_in_days=data["expiresInDays"],
        role=data["role"],
    )
    return success_response(
        {"invitation": invitation_schema.dump(invitation)}, "Invitation created", status=201
    )


@bp.route("/<invitation_id>", methods=["DELETE"])
@jwt_required()
def delete(invitation_id):
    delete_invitation(invitation_id, current_user_or_404())
    return success_response(message="Invitation deleted")


@bp.route("/accept", methods=["POST"])
@jwt_required()
def accept():
    user = current_user_or_404()
    data = request.get_json(silent=True) or {}
    result = redeem_invitation(data.get("inviteCode"), user)
    return success_response(
        result, f"Successfully joined {result['companyName']}"
    )
