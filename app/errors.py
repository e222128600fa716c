from __future__ import annotations

from flask import jsonify, request
from werkzeug.exceptions import HTTPException


def register_error_handlers(app) -> None:
    def handle_http_exception(error: HTTPException):
        if request.path.startswith("/api/"):
            resp = jsonify({"ok": False, "error": error.description, "status": error.code})
            resp.status_code = error.code or 500
            return resp
        return error

    app.register_error_handler(HTTPException, handle_http_exception)
