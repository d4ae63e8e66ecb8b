from flask_jwt_extended import get_jwt_identity

from feedme.extensions import db
from feedme.models.user import User
from feedme.utils.exceptions import Forbidden, NotFound, Unauthorized

ROLES = ("employee", "manager", "admin")


def normalize_role(role):
    return (role or "").strip().lower()


def current_user_or_404():
    uid = get_jwt_identity()
    if not uid:
        raise Unauthorized()
    user = db.session.get(User, uid)
    if not user:
        raise NotFound("User not found")
    return user


def current_company_user():
    user = current_user_or_404()
    if not user.company_id:
        raise NotFound("User not found or not in a company")
    return user


def require_roles(user, *roles, message=None):
    if normalize_role(user.role) not in roles:
        raise Forbidden(
            message or f"Requires role {' or '.join(roles)}. Your role: {user.role or 'undefined'}"
        )
