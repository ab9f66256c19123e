"""
services/__init__.py — Builds the per-app service graph.

create_app() calls init_services(app) once. The resulting SessionService is
stored on app.extensions["session_service"]; routes and middleware fetch it
with get_session_service(). There is no module-level service singleton, so
two apps in one process (e.g. tests) never share a revocation store.
"""

from __future__ import annotations

from flask import Flask, current_app

from authcore.app.extensions import db
from authcore.app.repositories.user_repository import SqlAlchemyUserRepository
from authcore.app.security.passwords import PasswordHasher
from authcore.app.security.tokens import TokenIssuer
from authcore.app.services.session_service import SessionService
from authcore.app.stores.revocation_store import InMemoryRevocationStore, RedisRevocationStore

_EXTENSION_KEY = "session_service"


def build_revocation_store(config):
    backend = config.get("REVOCATION_BACKEND", "redis")
    if backend == "memory":
        return InMemoryRevocationStore()
    if backend == "redis":
        return RedisRevocationStore.from_url(
            config["REDIS_URL"],
            socket_timeout=config.get("REDIS_SOCKET_TIMEOUT", 5.0),
        )
    raise ValueError(f"Unknown REVOCATION_BACKEND {backend!r}; expected 'redis' or 'memory'.")


def init_services(app: Flask) -> SessionService:
    config = app.config
    service = SessionService(
        # db.session is Flask-SQLAlchemy's scoped session: each request
        # (app context) gets its own underlying Session.
        users=SqlAlchemyUserRepository(db.session),
        tokens=TokenIssuer(
            access_secret=config["JWT_SECRET_KEY"],
            refresh_secret=config["JWT_REFRESH_SECRET_KEY"],
            access_ttl=config["JWT_ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["JWT_REFRESH_TOKEN_EXPIRES"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        ),
        revocations=build_revocation_store(config),
        hasher=PasswordHasher(rounds=config.get("BCRYPT_LOG_ROUNDS", 12)),
        default_role_key=config.get("DEFAULT_ROLE_KEY", "user"),
    )
    app.extensions[_EXTENSION_KEY] = service
    return service


def get_session_service() -> SessionService:
    return current_app.extensions[_EXTENSION_KEY]
