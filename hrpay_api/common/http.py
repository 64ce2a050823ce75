# hrpay_api/common/http.py
from flask import jsonify
from werkzeug.http import HTTP_STATUS_CODES


def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status


def _status_code_name(status: int) -> str:
    return HTTP_STATUS_CODES.get(status, "Error").upper().replace(" ", "_")


def fail(message="Bad Request", status=400, code=None, detail=None):
    """Error envelope; ``code`` defaults to the HTTP reason (``FORBIDDEN``, ``NOT_FOUND``...)."""
    err = {"message": message, "code": code or _status_code_name(status)}
    if detail:
        err["detail"] = detail
    return jsonify({"success": False, "error": err}), status
