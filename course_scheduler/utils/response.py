"""
Standard API response format and utility functions.
"""

from typing import Any

from pydantic import BaseModel


def _plain(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [_plain(d) for d in data]
    return data


def success_response(data: Any = None, message: str = "Success") -> dict:
    return {"success": True, "data": _plain(data), "message": message}


def error_response(error: str = "Error") -> dict:
    return {"success": False, "error": error}
