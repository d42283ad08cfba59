"""CORS policy for the API.

Most routes only answer the configured frontend origins. A few endpoints are
called straight from browsers on arbitrary origins and get a permissive
policy instead, for preflights and error responses alike.
"""

from __future__ import annotations

from collections.abc import Collection

from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

PUBLIC_ALLOW_HEADERS = ("authorization", "x-client-info", "apikey", "content-type")
PUBLIC_ALLOW_METHODS = ("POST", "OPTIONS")

PUBLIC_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(PUBLIC_ALLOW_HEADERS),
    "Access-Control-Allow-Methods": ", ".join(PUBLIC_ALLOW_METHODS),
}


class PathScopedCORSMiddleware:
    def __init__(
        self,
        app: ASGIApp,
        *,
        allow_origins: Collection[str],
        public_paths: Collection[str] = (),
    ) -> None:
        self.public_paths = frozenset(public_paths)
        self.restricted = CORSMiddleware(
            app,
            allow_origins=list(allow_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
        self.public = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_methods=PUBLIC_ALLOW_METHODS,
            allow_headers=PUBLIC_ALLOW_HEADERS,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["path"].rstrip("/") in self.public_paths:
            await self.public(scope, receive, send)
            return
        await self.restricted(scope, receive, send)
