from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

from feedme.schemas.user_schema import UserSchema
from feedme.services.membership_service import (
    create_profile,
    get_user_summary,
    leave_company,
    make_admin,
)
from feedme.utils.auth_utils import current_user_or_404
from feedme.utils.response_formatter import success_response

bp = Blueprint("users", __name__, url_prefix="/api/v1/users")

user_schema = UserSchema()


@bp.route("/profile", methods=["POST"])
@jwt_required()
def create_user_profile():
    uid = get_jwt_identity()
    user = create_profile(uid, get_jwt(), request.get_json(silent=True) or {})
    return success_response({"user": user_schema.dump(user)}, "Profile created", status=201)


@bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    user = current_user_or_404()
    return success_response(get_user_summary(user))


@bp.route("/make-admin", methods=["POST"])
@jwt_required()
def promote_to_admin():
    requester = current_user_or_404()
    data = request.get_json(silent=True) or {}
    target = make_admin(requester, data.get("email"))
    return success_response(
        {"user": {"id": target.id, "email": target.email, "role": target.role}},
        f"User {target.email} is now an admin",
    )


@bp.route("/leave-company", methods=["POST"])
@jwt_required()
def leave():
    user = leave_company(current_user_or_404())
    return success_response({"user": user_schema.dump(user)}, "Left company")
