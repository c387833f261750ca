"""The JSON response envelope shared by every API route.

Successful responses are `{"success": true, "data": ...}`; failures are
`{"success": false, "error": "...", "details": ...}` (details optional).
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None) -> dict:
    return {"success": True, "data": data}


def fail(status_code: int, error: str, details: Optional[Any] = None, headers: Optional[dict] = None) -> JSONResponse:
    body = {"success": False, "error": error}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body, headers=headers)
