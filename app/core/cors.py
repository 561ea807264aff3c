# app/core/cors.py
from typing import Dict, List, Optional

from app.core.config import settings


def resolve_origin(origin: Optional[str], allowed: Optional[List[str]] = None) -> str:
    """Echo an allow-listed origin, otherwise fall back to the first one"""
    allowed = allowed if allowed is not None else settings.cors_allowed_origins
    if origin and origin in allowed:
        return origin
    return allowed[0]


def get_cors_headers(origin: Optional[str]) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": resolve_origin(origin),
        "Access-Control-Allow-Headers": ", ".join(settings.cors_allowed_headers),
        "Access-Control-Allow-Methods": "GET, POST, PATCH, DELETE, OPTIONS",
        "Vary": "Origin",
    }
