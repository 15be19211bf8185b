"""
Request dependencies: sessions, the authenticated principal, the change
feed and the domain services built on them.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from restro.core.config import get_settings
from restro.core.errors import AuthError
from restro.core.security import Principal, SessionSigner, extract_token
from restro.database import get_db
from restro.services.auth import AuthService
from restro.services.catalog import CatalogService
from restro.services.changes import BaseChangeFeed
from restro.services.notifications import get_notification_service
from restro.services.orders import OrderLifecycleEngine
from restro.services.reports import ReportService

logger = logging.getLogger(__name__)


def get_change_feed(request: Request) -> BaseChangeFeed:
    return request.app.state.change_feed


def get_signer(request: Request) -> SessionSigner:
    return request.app.state.signer


def request_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    cookie = request.cookies.get(get_settings().session_cookie_name)
    return extract_token(cookie, authorization)


async def get_optional_principal(
    request: Request,
    authorization: Optional[str] = Header(None),
    signer: SessionSigner = Depends(get_signer),
) -> Optional[Principal]:
    """The caller's principal, or None for anonymous and stale sessions."""
    token = request_token(request, authorization)
    if not token:
        return None
    try:
        return signer.verify(token)
    except AuthError as e:
        logger.debug(f"Ignoring unusable session: {e.message}")
        return None


async def get_principal(
    request: Request,
    authorization: Optional[str] = Header(None),
    signer: SessionSigner = Depends(get_signer),
) -> Principal:
    token = request_token(request, authorization)
    if not token:
        raise AuthError("No authentication token provided")
    return signer.verify(token)


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=get_settings().session_cookie_name, path="/")


# =============================================================================
# SERVICES
# =============================================================================

def get_order_engine(
    db: AsyncSession = Depends(get_db),
    feed: BaseChangeFeed = Depends(get_change_feed),
) -> OrderLifecycleEngine:
    return OrderLifecycleEngine(db, feed)


def get_catalog_service(
    db: AsyncSession = Depends(get_db),
    feed: BaseChangeFeed = Depends(get_change_feed),
) -> CatalogService:
    return CatalogService(db, feed)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    signer: SessionSigner = Depends(get_signer),
) -> AuthService:
    return AuthService(db, signer=signer, notifier=get_notification_service())


def get_report_service(db: AsyncSession = Depends(get_db)) -> ReportService:
    return ReportService(db)
