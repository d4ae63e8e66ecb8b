from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from feedme.schemas.order_session_schema import OrderSessionSchema, ParticipantSchema
from feedme.services.session_service import (
    auto_pass,
    create_session,
    delete_session,
    get_current_session,
    list_sessions,
    reconcile_participants,
    respond,
    update_session,
)
from feedme.utils.auth_utils import current_company_user, current_user_or_404
from feedme.utils.response_formatter import success_response

bp = Blueprint("order_sessions", __name__, url_prefix="/api/v1/order-sessions")

session_schema = OrderSessionSchema()
sessions_schema = OrderSessionSchema(many=True)
participant_schema = ParticipantSchema()


@bp.route("", methods=["GET"])
@jwt_required()
def list_company_sessions():
    user = current_company_user()
    return success_response({"sessions": sessions_schema.dump(list_sessions(user.company_id))})


@bp.route("", methods=["POST"])
@jwt_required()
def create():
    user = current_user_or_404()
    data = request.get_json(silent=True) or {}
    session = create_session(
        user,
        data.get("restaurant_name"),
        data.get("restaurant_options"),
        data.get("start_time"),
        data.get("end_time"),
        group_link=data.get("doordash_group_link"),
    )
    return success_response(
        {"session": session_schema.dump(session)}, "Order session created", status=201
    )


@bp.route("/current", methods=["GET"])
@jwt_required()
def current():
    user = current_company_user()
    session = get_current_session(user.company_id)
    return success_response({"session": session_schema.dump(session) if session else None})


@bp.route("/<session_id>", methods=["PATCH"])
@jwt_required()
def update(session_id):
    user = current_company_user()
    session = update_session(session_id, user, request.get_json(silent=True) or {})
    return success_response({"session": session_schema.dump(session)}, "Order session updated")


@bp.route("/<session_id>", methods=["DELETE"])
@jwt_required()
def delete(session_id):
    delete_session(session_id, current_company_user())
    return success_response(message="Order session deleted")


@bp.route("/respond", methods=["POST"])
@jwt_required()
def respond_to_session():
    user = current_company_user()
    data = request.get_json(silent=True) or {}
    participant = respond(
        data.get("session_id"), user, data.get("response"), data.get("preset_order")
    )
    return success_response({"participant": participant_schema.dump(participant)})


@bp.route("/auto-pass", methods=["POST"])
@jwt_required()
def auto_pass_pending():
    user = current_company_user()
    data = request.get_json(silent=True) or {}
    return success_response(auto_pass(data.get("session_id"), user.company_id))


@bp.route("/<session_id>/participants/reconcile", methods=["POST"])
@jwt_required()
def reconcile(session_id):
    session, added = reconcile_participants(session_id, current_company_user())
    return success_response({"session": session_schema.dump(session), "added": added})
