import logging
import secrets
import string
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from feedme.extensions import db
from feedme.models.invitation import Invitation
from feedme.services.membership_service import ensure_organization
from feedme.utils.auth_utils import ROLES, normalize_role, require_roles
from feedme.utils.exceptions import (
    AlreadyRedeemed,
    CodeGenerationExhausted,
    Expired,
    Forbidden,
    InvalidCode,
    InvalidInput,
    MaxUsesReached,
    NotFound,
    UpstreamFailure,
)
from feedme.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_invite_code(length=8):
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def _code_taken(code):
    return db.session.query(Invitation.id).filter_by(invite_code=code).first() is not None


def create_invitation(company_id, company_name, issuer, max_uses=1, expires_in_days=7,
                      role="employee", now=None):
    if not company_id or not company_name:
        raise InvalidInput("Company ID and name are required")
    require_roles(issuer, "manager", "admin",
                  message="Only managers and admins can create invitations")
    if issuer.company_id != company_id:
        raise Forbidden("You can only invite users to your own company")
    if int(max_uses) < 1 or int(expires_in_days) < 1:
        raise InvalidInput("maxUses and expiresInDays must be positive")
    role = normalize_role(role) or "employee"
    if role not in ROLES:
        raise InvalidInput(f"Unknown role {role}")
    # ROLES is ordered by rank
    if ROLES.index(role) > ROLES.index(normalize_role(issuer.role)):
        raise Forbidden("You cannot grant a role above your own")

    length = current_app.config.get("INVITE_CODE_LENGTH", 8)
    max_attempts = current_app.config.get("INVITE_CODE_MAX_ATTEMPTS", 10)
    expires_at = (now or utcnow()) + timedelta(days=int(expires_in_days))

    for attempt in range(1, max_attempts + 1):
        code = generate_invite_code(length)
        if _code_taken(code):
            continue

        invitation = Invitation(
            company_id=company_id,
            company_name=company_name,
            invite_code=code,
            role=role,
            created_by=issuer.id,
            expires_at=expires_at,
            max_uses=int(max_uses),
            used_count=0,
            used_by=[],
            is_active=True,
        )
        db.session.add(invitation)
        try:
            db.session.commit()
        except IntegrityError:
            # lost a race on the unique index
            db.session.rollback()
            logger.warning("Invite code collision on insert (attempt %d)", attempt)
            continue
        return invitation

    raise CodeGenerationExhausted()


def list_invitations(company_id, requester):
    if not company_id:
        raise InvalidInput("Company ID is required")
    return (
        Invitation.query
        .filter_by(company_id=company_id, created_by=requester.id)
        .order_by(Invitation.created_at.desc())
        .all()
    )


def redeem_invitation(code, redeemer, now=None):
    if not code:
        raise InvalidInput("Invite code is required")
    now = now or utcnow()
    code = code.strip().upper()

    invitation = (
        Invitation.query
        .filter_by(invite_code=code)
        .with_for_update()
        .first()
    )
    exhausted = invitation is not None and invitation.used_count >= invitation.max_uses
    if not invitation or not (invitation.is_active or exhausted or invitation.is_expired(now)):
        raise InvalidCode()

    if invitation.is_expired(now):
        if invitation.is_active:
            invitation.is_active = False
            db.session.commit()
        raise Expired()

    # a repeat redeemer hears "already redeemed" even once the code is used up
    used_by = list(invitation.used_by or [])
    if redeemer.id in used_by:
        raise AlreadyRedeemed()

    if exhausted:
        raise MaxUsesReached()

    # reassign so the JSON column is flagged dirty
    invitation.used_by = used_by + [redeemer.id]
    invitation.used_count = invitation.used_count + 1
    invitation.is_active = invitation.used_count < invitation.max_uses
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise UpstreamFailure(f"Failed to accept invitation: {e}")

    try:
        org, created = ensure_organization(
            invitation.company_id, invitation.company_name, created_by=invitation.created_by
        )
        db.session.commit()
        if created:
            logger.info("Created organization %s from invitation %s", org.id, invitation.id)
    except SQLAlchemyError as e:
        db.session.rollback()
        raise UpstreamFailure(f"Invitation accepted but failed to create organization: {e}")

    try:
        redeemer.company_id = invitation.company_id
        redeemer.role = invitation.role or "employee"
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        raise UpstreamFailure(f"Invitation accepted but failed to update user profile: {e}")

    return {"companyId": invitation.company_id, "companyName": invitation.company_name}


def delete_invitation(invitation_id, requester):
    invitation = db.session.get(Invitation, invitation_id)
    if not invitation:
        raise NotFound("Invitation not found")
    if invitation.created_by != requester.id:
        raise Forbidden("Unauthorized to delete this invitation")
    db.session.delete(invitation)
    db.session.commit()
