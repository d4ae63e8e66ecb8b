import logging

from sqlalchemy.exc import SQLAlchemyError

from feedme.extensions import db
from feedme.models.order_session import (
    PARTICIPANT_STATUSES,
    SESSION_STATUSES,
    OrderSession,
    OrderSessionParticipant,
)
from feedme.models.user import User
from feedme.utils.auth_utils import normalize_role, require_roles
from feedme.utils.exceptions import Forbidden, InvalidInput, NotFound, UpstreamFailure
from feedme.utils.timeutils import parse_timestamp, utcnow

logger = logging.getLogger(__name__)

AUTO_PASS_NOTE = "Auto-passed due to deadline"


def _require_manager_or_admin(user, action):
    require_roles(
        user, "manager", "admin",
        message=f"Only managers and admins can {action} order sessions. "
                f"Your role: {user.role or 'undefined'}",
    )


def _company_session(session_id, company_id):
    session = OrderSession.query.filter_by(id=session_id, company_id=company_id).first()
    if not session:
        raise NotFound("Order session not found")
    return session


def _participant_for(session_id, user):
    return OrderSessionParticipant(
        session_id=session_id,
        user_id=user.id,
        user_name=user.display_name,
        status="pending",
    )


def create_session(creator, restaurant_name, restaurant_options, start_time, end_time,
                   group_link=None):
    if not creator.company_id:
        raise NotFound("User not found or not in a company")
    if normalize_role(creator.role) != "manager":
        raise Forbidden("Only managers can create order sessions")
    if not restaurant_name or not restaurant_options or not start_time or not end_time:
        raise InvalidInput("Missing required fields")

    start = parse_timestamp(start_time, "start_time")
    end = parse_timestamp(end_time, "end_time")
    if end < start:
        raise InvalidInput("end_time must not be before start_time")

    session = OrderSession(
        company_id=creator.company_id,
        restaurant_name=restaurant_name,
        restaurant_options=restaurant_options,
        start_time=start,
        end_time=end,
        doordash_group_link=group_link,
        created_by=creator.id,
        status="upcoming",
    )

    # session row and fan-out share one transaction
    try:
        db.session.add(session)
        db.session.flush()
        members = User.query.filter_by(company_id=creator.company_id).all()
        for member in members:
            db.session.add(_participant_for(session.id, member))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Failed to create order session for company %s: %s",
                     creator.company_id, e)
        raise UpstreamFailure(f"Failed to create order session: {e}")

    logger.info("Order session %s created with %d participants", session.id, len(members))
    return session


def reconcile_participants(session_id, user):
    _require_manager_or_admin(user, "reconcile")
    session = _company_session(session_id, user.company_id)

    existing = {p.user_id for p in session.participants}
    added = 0
    for member in User.query.filter_by(company_id=session.company_id).all():
        if member.id not in existing:
            db.session.add(_participant_for(session.id, member))
            added += 1
    db.session.commit()
    return session, added


def update_session(session_id, user, patch):
    _require_manager_or_admin(user, "update")
    session = _company_session(session_id, user.company_id)

    status = patch.get("status")
    if status:
        if status not in SESSION_STATUSES:
            raise InvalidInput(f"Invalid status {status}")
        session.status = status
    if "doordash_group_link" in patch:
        session.doordash_group_link = patch.get("doordash_group_link")
    if patch.get("start_time"):
        session.start_time = parse_timestamp(patch["start_time"], "start_time")
    if patch.get("end_time"):
        session.end_time = parse_timestamp(patch["end_time"], "end_time")

    if session.end_time < session.start_time:
        db.session.rollback()
        raise InvalidInput("end_time must not be before start_time")

    session.updated_at = utcnow()
    db.session.commit()
    return session


def delete_session(session_id, user):
    _require_manager_or_admin(user, "delete")
    session = _company_session(session_id, user.company_id)
    db.session.delete(session)
    db.session.commit()


def list_sessions(company_id):
    return (
        OrderSession.query
        .filter_by(company_id=company_id)
        .order_by(OrderSession.created_at.desc())
        .all()
    )


def get_current_session(company_id, now=None):
    now = now or utcnow()
    return (
        OrderSession.query
        .filter(
            OrderSession.company_id == company_id,
            OrderSession.status == "active",
            OrderSession.start_time <= now,
            OrderSession.end_time >= now,
        )
        .order_by(OrderSession.created_at.desc())
        .first()
    )


def respond(session_id, user, response, preset_order=None):
    if not session_id or not response:
        raise InvalidInput("Missing required fields")
    if response not in PARTICIPANT_STATUSES:
        raise InvalidInput(f"Invalid response {response}")
    if response == "preset" and not preset_order:
        raise InvalidInput("Preset order is required when response is preset")

    session = _company_session(session_id, user.company_id)
    if session.status == "closed":
        raise InvalidInput("Order session is closed")

    participant = OrderSessionParticipant.query.filter_by(
        session_id=session.id, user_id=user.id
    ).first()
    if participant is None:
        participant = _participant_for(session.id, user)
        db.session.add(participant)

    participant.user_name = user.display_name
    participant.status = response
    participant.preset_order = preset_order if response == "preset" else None
    participant.updated_at = utcnow()
    db.session.commit()
    return participant


def _auto_pass(session, now):
    pending = [p for p in session.participants if p.status == "pending"]
    for participant in pending:
        participant.status = "passed"
        participant.preset_order = AUTO_PASS_NOTE
        participant.updated_at = now

    closed = not any(p.status == "pending" for p in session.participants)
    if closed:
        session.status = "closed"
        session.updated_at = now
    return len(pending), closed


def auto_pass(session_id, company_id, now=None):
    if not session_id:
        raise InvalidInput("Session ID is required")
    now = now or utcnow()
    session = _company_session(session_id, company_id)

    past_deadline = now > session.end_time
    if session.status != "active" or not past_deadline:
        raise InvalidInput(
            "Session is not active or deadline has not passed",
            {"sessionStatus": session.status, "isPastDeadline": past_deadline},
        )

    count, closed = _auto_pass(session, now)
    db.session.commit()
    logger.info("Auto-passed %d participants in session %s", count, session.id)
    return {
        "message": f"Auto-passed {count} participants",
        "autoPassedCount": count,
        "sessionClosed": closed,
    }


def advance_sessions(now=None):
    """Clock-driven transitions, run from the scheduler CLI command."""
    now = now or utcnow()

    started = (
        OrderSession.query
        .filter(
            OrderSession.status == "upcoming",
            OrderSession.start_time <= now,
            OrderSession.end_time >= now,
        )
        .all()
    )
    for session in started:
        session.status = "active"
        session.updated_at = now

    expired = (
        OrderSession.query
        .filter(
            OrderSession.status.in_(("upcoming", "active")),
            OrderSession.end_time < now,
        )
        .all()
    )
    passed = 0
    for session in expired:
        count, _ = _auto_pass(session, now)
        passed += count
        session.status = "closed"
        session.updated_at = now

    db.session.commit()
    logger.info("Advanced sessions: %d activated, %d closed, %d auto-passed",
                len(started), len(expired), passed)
    return {"activated": len(started), "closed": len(expired), "autoPassed": passed}
