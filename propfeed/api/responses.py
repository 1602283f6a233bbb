from typing import Any, Optional
from fastapi import Request
from propfeed.schemas.base_schema import ApiResponse


def ok(data: Any, message: str, request: Optional[Request] = None) -> ApiResponse:
    """Wrap a successful response in the standard ApiResponse envelope."""
    return ApiResponse(
        success=True,
        data=data,
        message=message,
        errors=None,
        trace_id=getattr(request.state, "trace_id", "") if request else "",
    )


def error_envelope(message: str, request: Optional[Request] = None, errors: Optional[list] = None) -> dict:
    """Error envelope as a plain dict, ready for a JSONResponse."""
    return ApiResponse(
        success=False,
        data=None,
        message=message,
        errors=errors if errors is not None else [message],
        trace_id=getattr(request.state, "trace_id", "") if request else "",
    ).model_dump()
