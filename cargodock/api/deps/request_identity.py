from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cargodock.core.config import settings
from cargodock.db.session import get_db
from cargodock.models.mixins import SYSTEM_USER
from cargodock.schemas.request_identity import RequestIdentity
from cargodock.services.identity_mapping_service import attach_internal_user_context

logger = logging.getLogger(__name__)

SUPPORTED_AUTH_MODES = frozenset({"legacy_header"})


@lru_cache(maxsize=8)
def _resolve_auth_mode(raw: str) -> str:
    if raw in SUPPORTED_AUTH_MODES:
        return raw
    logger.warning("auth_mode_unsupported mode=%s fallback=legacy_header", raw)
    return "legacy_header"


def _normalized_auth_mode() -> str:
    return _resolve_auth_mode((settings.AUTH_MODE or "legacy_header").strip().lower())


def _header_roles(request: Request) -> list[str]:
    raw = request.headers.get("X-User-Roles") or ""
    return [token.strip().lower() for token in raw.split(",") if token.strip()]


def _identity_from_legacy_header(request: Request) -> RequestIdentity:
    email = (
        request.headers.get("X-User-Email")
        or request.headers.get("X-User")
        or SYSTEM_USER
    )
    return RequestIdentity(
        email=(email or "").strip().lower() or None,
        auth_source="legacy_header",
        role_names=_header_roles(request),
    )


_IDENTITY_RESOLVERS = {
    "legacy_header": _identity_from_legacy_header,
}


def resolve_request_identity(request: Request) -> RequestIdentity:
    return _IDENTITY_RESOLVERS[_normalized_auth_mode()](request)


def get_request_identity_with_db(
    request: Request,
    db: Session = Depends(get_db),
) -> RequestIdentity:
    identity = resolve_request_identity(request)
    return attach_internal_user_context(db, identity=identity)
