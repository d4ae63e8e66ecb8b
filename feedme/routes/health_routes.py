from flask import Blueprint
from sqlalchemy import text

from feedme.extensions import db
from feedme.utils.response_formatter import success_response

bp = Blueprint("health", __name__, url_prefix="/api/v1")


@bp.route("/health", methods=["GET"])
def health():
    db.session.execute(text("SELECT 1"))
    return success_response({"status": "ok", "database": "connected"})
