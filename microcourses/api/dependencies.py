"""FastAPI dependencies: the authenticated caller and the service graph.

Services are built per request from three overridable roots:

    get_store_provider   StoreProvider (Postgres or in-memory)
    get_cache            progress view cache
    get_task_queue       issuance task queue

plus get_issuance_mode, which picks inline vs queued issuance.  Tests
swap any of these via app.dependency_overrides.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from microcourses.core.config import SETTINGS, IssuanceMode
from microcourses.models.principal import Principal
from microcourses.repos import store
from microcourses.repos.store import StoreProvider
from microcourses.services import token_service
from microcourses.services.cache import CacheService, cache_service
from microcourses.services.certificate_issuer import CertificateIssuer
from microcourses.services.certificate_queries import CertificateQueries
from microcourses.services.certificate_verifier import CertificateVerifier
from microcourses.services.enrollment_service import EnrollmentService
from microcourses.services.issuance_dispatch import (
    InlineIssuanceDispatcher,
    IssuanceDispatcher,
    QueuedIssuanceDispatcher,
)
from microcourses.services.progress_ledger import ProgressLedger
from microcourses.services.progress_views import ProgressViews
from microcourses.services.task_queue import TaskQueue, task_queue

logger = logging.getLogger(__name__)

# Tokens are minted by the platform's auth endpoint; tokenUrl only feeds
# the OpenAPI docs.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s",
        principal.user_id,
        principal.roles,
    )
    return principal


def require_any_role(roles: set[str]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({"creator", "admin"}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s has none of roles=%s",
                principal.user_id,
                roles,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def caller_id(principal: Principal) -> UUID:
    """The caller's user UUID.  A token whose sub is not a UUID is invalid."""
    try:
        return UUID(principal.user_id)
    except ValueError:
        logger.warning("Token sub is not a UUID: %r", principal.user_id)
        raise _unauthorized("Invalid token") from None


# ---------------------------------------------------------------------------
# Service graph
# ---------------------------------------------------------------------------


def get_store_provider() -> StoreProvider:
    return store.store_provider


def get_cache() -> CacheService:
    return cache_service


def get_task_queue() -> TaskQueue:
    return task_queue


def get_issuance_mode() -> IssuanceMode:
    return SETTINGS.certificate_issuance


StoreDep = Annotated[StoreProvider, Depends(get_store_provider)]
CacheDep = Annotated[CacheService, Depends(get_cache)]


def get_issuance_dispatcher(
    provider: StoreDep,
    queue: Annotated[TaskQueue, Depends(get_task_queue)],
    mode: Annotated[IssuanceMode, Depends(get_issuance_mode)],
) -> IssuanceDispatcher:
    if mode == "queue":
        return QueuedIssuanceDispatcher(queue)
    return InlineIssuanceDispatcher(CertificateIssuer(provider))


def get_progress_ledger(
    provider: StoreDep,
    cache: CacheDep,
    dispatcher: Annotated[IssuanceDispatcher, Depends(get_issuance_dispatcher)],
) -> ProgressLedger:
    return ProgressLedger(provider, dispatcher, cache)


def get_progress_views(provider: StoreDep, cache: CacheDep) -> ProgressViews:
    return ProgressViews(provider, cache, cache_ttl=SETTINGS.progress_cache_ttl)


def get_enrollment_service(provider: StoreDep, cache: CacheDep) -> EnrollmentService:
    return EnrollmentService(provider, cache)


def get_certificate_queries(provider: StoreDep) -> CertificateQueries:
    return CertificateQueries(provider)


def get_certificate_verifier(provider: StoreDep) -> CertificateVerifier:
    return CertificateVerifier(provider)
