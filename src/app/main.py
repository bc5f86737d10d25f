# src/app/main.py
from __future__ import annotations

import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from src.app.config import settings
from src.app.deps import close_github_client, get_rate_limit_sweeper
from src.app.routers.auth import router as auth_router
from src.app.routers.blog import router as blog_router
from src.app.routers.content import router as content_router
from src.app.routers.github import router as github_router
from src.app.routers.publish import router as publish_router
from src.app.routers.recipes import router as recipes_router
from src.app.routers.tags import admin_router as admin_tags_router
from src.app.routers.tags import router as tags_router
from src.app.routers.uploads import router as uploads_router

# Logging simples no stdout (bom para dev e containers)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)


class ScopedCORSMiddleware:
    """
    App CORS policy, except for public read-only prefixes which answer any
    origin (preflights included) for GET.
    """

    def __init__(self, app: ASGIApp, public_prefixes: tuple[str, ...] = (), **options):
        self._default = CORSMiddleware(app, **options)
        self._public = CORSMiddleware(
            app,
            allow_origins=["*"],
            allow_methods=["GET", "OPTIONS"],
            allow_headers=["Content-Type"],
        )
        self._public_prefixes = public_prefixes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "") if scope["type"] == "http" else ""
        if self._public_prefixes and path.startswith(self._public_prefixes):
            await self._public(scope, receive, send)
        else:
            await self._default(scope, receive, send)


app = FastAPI(title="Kitchen Notes API", version="0.1.0")

app.add_middleware(
    ScopedCORSMiddleware,
    public_prefixes=(github_router.prefix,),
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.FORWARDED_ALLOW_IPS)

# Public
app.include_router(recipes_router)
app.include_router(blog_router)
app.include_router(tags_router)
app.include_router(github_router)
app.include_router(auth_router)

# Admin
app.include_router(admin_tags_router)
app.include_router(content_router)
app.include_router(publish_router)
app.include_router(uploads_router)


@app.on_event("startup")
async def startup() -> None:
    await get_rate_limit_sweeper().start()


@app.on_event("shutdown")
async def shutdown() -> None:
    await get_rate_limit_sweeper().stop()
    close_github_client()


@app.get("/health")
def health():
    return {"ok": True}
