"""
Response envelope shared by every endpoint: {success, data, message}.
Domain errors put their machine code under data.code.
"""

from typing import Any, Optional


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(message: str = "Error", data: Any = None, code: Optional[str] = None) -> dict:
    if code is not None:
        data = {"code": code, **(data or {})}
    return {"success": False, "data": data, "message": message}
