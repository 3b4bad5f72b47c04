"""
FastAPI dependencies for Tortilla Watch
"""
import hashlib

from fastapi import Request, Response

from tortilla_watch.config import settings


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket peer, else 0.0.0.0."""
    forwarded = request.headers.get("x-forwarded-for", "")
    ip = forwarded.split(",")[0].strip()
    if not ip and request.client:
        ip = request.client.host
    return ip or "0.0.0.0"


def hash_ip(ip: str) -> str:
    """Salted SHA-256 of a client IP, stored instead of the raw address."""
    return hashlib.sha256(f"{settings.IP_HASH_SALT}{ip}".encode("utf-8")).hexdigest()


NO_CACHE = "no-store, no-cache, must-revalidate, proxy-revalidate"


def no_cache(response: Response) -> Response:
    """Mark a polled response as never cacheable."""
    response.headers["Cache-Control"] = NO_CACHE
    return response
