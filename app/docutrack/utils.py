from __future__ import annotations

from typing import Any

from flask import jsonify, request


def ok(data: Any = None, status: int = 200, message: str | None = None):
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def fail(error: str, status: int):
    return jsonify({"success": False, "error": error}), status


def json_body() -> dict[str, Any]:
    """Request JSON object, or form fields for multipart/url-encoded requests."""
    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return request.form.to_dict()
