from typing import Any, Dict, Optional

from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, Throttled, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler


ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: ("unauthorised", "Authentication credentials were not provided or are invalid."),
    status.HTTP_403_FORBIDDEN: ("forbidden", "You do not have permission to perform this action."),
    status.HTTP_404_NOT_FOUND: ("not_found", "The requested resource was not found."),
    status.HTTP_405_METHOD_NOT_ALLOWED: ("method_not_allowed", "Method not allowed."),
    status.HTTP_409_CONFLICT: ("conflict", "The request conflicts with the current state."),
}


def _field_errors(data: Any) -> Optional[Dict[str, list]]:
    """Flatten DRF's error structure into {field: [messages]}."""
    if not isinstance(data, dict):
        return None
    out = {}
    for key, value in data.items():
        if isinstance(value, (list, tuple)):
            out[key] = [str(v) for v in value]
        else:
            out[key] = [str(value)]
    return out


def _first_message(data: Any) -> Optional[str]:
    if isinstance(data, (list, tuple)):
        return str(data[0]) if data else None
    if not isinstance(data, dict):
        return str(data) if data is not None else None

    if "detail" in data:
        val = data["detail"]
        if isinstance(val, (list, tuple)):
            return str(val[0]) if val else None
        return str(val)

    nfe = data.get("non_field_errors")
    if isinstance(nfe, (list, tuple)) and nfe:
        return str(nfe[0])

    # single-field errors surface their first message
    if len(data) == 1:
        only = next(iter(data.values()))
        if isinstance(only, (list, tuple)) and only:
            return str(only[0])
        if isinstance(only, str):
            return only
    return None


def custom_exception_handler(exc, context):
    """
    Wrap DRF's exception_handler so every API error has the same envelope:
    {ok, code, message, detail, field_errors, details, status, path}.
    """
    response = exception_handler(exc, context)
    if response is None:
        # not an API error: let Django's 500 handling take over
        return None

    request = context.get("request")
    path = request.get_full_path() if request else None
    status_code = response.status_code
    data = response.data

    detail_text = _first_message(data)
    field_errors = _field_errors(data)
    details_block = data if isinstance(data, dict) else None

    if isinstance(exc, ValidationError):
        code, message = "validation_error", "Invalid input."
    elif isinstance(exc, Throttled):
        code, message = "rate_limited", "Too many requests. Please wait before retrying."
        details_block = {"retry_after": getattr(exc, "wait", None)}
    elif isinstance(exc, Http404):
        code, message = ERROR_CODES[status.HTTP_404_NOT_FOUND]
    elif isinstance(exc, APIError):
        code, message = exc.default_code, detail_text or "An error occurred."
    else:
        code, message = ERROR_CODES.get(status_code, ("error", "An error occurred."))

    body = {
        "ok": False,
        "code": code,
        "message": message,
        "detail": detail_text,
        "field_errors": field_errors,
        "details": details_block,
        "status": status_code,
        "path": path,
    }
    wrapped = Response(body, status=status_code)
    for header in ("Retry-After", "WWW-Authenticate", "Allow"):
        if response.has_header(header):
            wrapped[header] = response[header]
    return wrapped


class APIError(APIException):
    """
    Typed API error with a custom status.

        raise APIError(detail="Contact already unlocked.", code="already_unlocked", status_code=409)
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request."
    default_code = "error"

    def __init__(self, detail=None, code=None, status_code=None):
        super().__init__(detail=detail or self.default_detail, code=code or self.default_code)
        if code:
            self.default_code = code
        if status_code is not None:
            self.status_code = status_code
