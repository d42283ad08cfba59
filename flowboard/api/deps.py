from fastapi import Request

from flowboard.core.config import get_settings

settings = get_settings()


def request_origin(request: Request) -> str:
    """Origin used to build links back into the frontend."""
    return request.headers.get("origin") or settings.frontend_origin
