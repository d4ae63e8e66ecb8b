import logging

from feedme.extensions import db
from feedme.models.organization import Organization
from feedme.models.user import User
from feedme.utils.auth_utils import ROLES, normalize_role, require_roles
from feedme.utils.exceptions import Conflict, Forbidden, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def _valid_role(role, default="employee"):
    role = normalize_role(role)
    return role if role in ROLES else default


def _primary_email(data):
    addresses = data.get("email_addresses") or []
    if addresses:
        return addresses[0].get("email_address")
    return data.get("email")


def ensure_organization(company_id, name, created_by=None):
    org = db.session.get(Organization, company_id) if company_id else None
    if org:
        return org, False
    org = Organization(name=name, created_by=created_by)
    if company_id:
        org.id = company_id
    db.session.add(org)
    db.session.flush()
    return org, True


def upsert_user_from_identity(event_type, data):
    """Apply a verified ``user.created`` / ``user.updated`` identity event."""
    uid = data.get("id")
    if not uid:
        raise InvalidInput("Identity event without user id")
    metadata = data.get("public_metadata") or {}

    user = db.session.get(User, uid)

    if event_type == "user.created":
        if user is None:
            user = User(id=uid)
            db.session.add(user)
        user.email = _primary_email(data)
        user.first_name = data.get("first_name")
        user.last_name = data.get("last_name")
        user.profile_image_url = data.get("image_url")
        user.role = _valid_role(metadata.get("role"))

        company_id = metadata.get("companyId")
        company_name = metadata.get("companyName")
        if company_name:
            org, created = ensure_organization(company_id, company_name, created_by=uid)
            if created:
                logger.info("Created organization %s for new user %s", org.id, uid)
            company_id = org.id
        elif company_id and db.session.get(Organization, company_id) is None:
            logger.warning("user.created references unknown company %s", company_id)
            company_id = None
        user.company_id = company_id

    elif event_type == "user.updated":
        if user is None:
            logger.warning("user.updated for unknown user %s, dropping", uid)
            return None
        email = _primary_email(data)
        if email:
            user.email = email
        if "first_name" in data:
            user.first_name = data.get("first_name")
        if "last_name" in data:
            user.last_name = data.get("last_name")
        role = normalize_role(metadata.get("role"))
        if role in ROLES:
            user.role = role

    else:
        logger.info("Unhandled identity event type: %s", event_type)
        return None

    db.session.commit()
    return user


PROFILE_FIELDS = ("email", "first_name", "last_name", "image_url")


def create_profile(uid, claims, profile=None):
    """First-login profile. The role comes from the verified token claims only."""
    if db.session.get(User, uid):
        raise Conflict("User profile already exists")

    fields = {k: v for k, v in (profile or {}).items() if k in PROFILE_FIELDS}
    fields.update({k: claims[k] for k in PROFILE_FIELDS if claims.get(k)})
    metadata = claims.get("public_metadata") or {}

    user = User(
        id=uid,
        email=fields.get("email"),
        first_name=fields.get("first_name") or "",
        last_name=fields.get("last_name") or "",
        role=_valid_role(metadata.get("role") or claims.get("role")),
        profile_image_url=fields.get("image_url"),
        company_id=None,
    )
    db.session.add(user)
    db.session.commit()
    return user


def get_user_summary(user):
    company = db.session.get(Organization, user.company_id) if user.company_id else None
    return {
        "user": user.to_dict(),
        "actualRole": user.role,
        "company": {"id": company.id, "name": company.name} if company else None,
        "orphaned": bool(user.company_id and company is None),
        "message": f"User {user.email} has role: {user.role}",
    }


def create_company(user, name, logo_url=None):
    if not name:
        raise InvalidInput("Company name is required")

    repaired = False
    if user.company_id:
        if db.session.get(Organization, user.company_id):
            raise InvalidInput(
                "User already has a valid company", {"companyId": user.company_id}
            )
        logger.info("User %s has orphaned company_id %s, creating a new company",
                    user.id, user.company_id)
        repaired = True

    org = Organization(name=name, logo_url=logo_url, created_by=user.id)
    db.session.add(org)
    db.session.flush()

    user.company_id = org.id
    user.role = "admin"
    db.session.commit()
    return org, repaired


def get_company(user):
    if not user.company_id:
        return None
    return db.session.get(Organization, user.company_id)


def update_company(user, company_id, name, logo_url=None):
    if not company_id or not name:
        raise InvalidInput("Company ID and name are required")
    if normalize_role(user.role) != "admin" or user.company_id != company_id:
        raise Forbidden("Only company admins can update company information")

    org = db.session.get(Organization, company_id)
    if not org:
        raise NotFound("Company not found")
    org.name = name
    if logo_url is not None:
        org.logo_url = logo_url
    db.session.commit()
    return org


def leave_company(user):
    user.company_id = None
    db.session.commit()
    return user


def make_admin(requester, email):
    if not email:
        raise InvalidInput("Email is required")
    require_roles(requester, "admin", message="Only admins can promote users")

    target = User.query.filter(db.func.lower(User.email) == email.strip().lower()).first()
    if not target:
        raise NotFound("User not found in database. Please sign in first.")

    target.role = "admin"
    db.session.commit()
    logger.info("User %s promoted %s to admin", requester.id, target.id)
    return target


def company_members(company_id):
    return User.query.filter_by(company_id=company_id).order_by(User.created_at).all()
