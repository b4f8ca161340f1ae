"""JSON responses used by the contact API and the app-wide error handlers."""

from typing import Dict, Optional

from fastapi.responses import JSONResponse


class ContactJSONResponse(JSONResponse):
    """JSON response with an explicit charset that is never cached."""

    media_type = "application/json; charset=utf-8"

    def __init__(self, content, status_code: int = 200, headers: Optional[Dict[str, str]] = None, **kwargs):
        merged = {"Cache-Control": "no-store"}
        if headers:
            merged.update(headers)
        super().__init__(content, status_code=status_code, headers=merged, **kwargs)


def ok_response() -> ContactJSONResponse:
    return ContactJSONResponse({"ok": True})


def error_response(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> ContactJSONResponse:
    return ContactJSONResponse({"error": message}, status_code=status_code, headers=headers)
