from flask import Blueprint
from sqlalchemy import text

from hrpay_api.extensions import db
from hrpay_api.common.http import ok

bp = Blueprint("health", __name__, url_prefix="/api/v1")


@bp.get("/health")
def health():
    db.session.execute(text("SELECT 1"))
    return ok({"status": "ok"})
