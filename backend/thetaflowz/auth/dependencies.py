"""
ThetaFlowz - Auth Dependencies

FastAPI dependencies resolving the current session user and gating routes
on plan entitlements.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

import structlog

from thetaflowz.errors import EntitlementDenied
from thetaflowz.models import Feature, User
from thetaflowz.services import Services

log = structlog.get_logger(__name__)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_user(services: Services = Depends(get_services)) -> User:
    """Restore the persisted session user.

    Usage::

        @router.get("/me")
        async def me(user: User = Depends(get_current_user)):
            return user

    Raises:
        HTTPException 401 if nobody is logged in.
    """
    user = services.sessions.restore()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_feature(feature: Feature):
    """Dependency factory: 403 unless the user's plan grants ``feature``."""

    def dependency(
        user: User = Depends(get_current_user),
        services: Services = Depends(get_services),
    ) -> User:
        if not services.entitlements.has_access(user, feature):
            log.info("entitlement.denied", user_id=user.id, feature=feature.value, plan=user.plan.value)
            raise EntitlementDenied(feature.value)
        return user

    return dependency


def require_screener(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> User:
    """Trial gate for the screener, measured from account creation."""
    if not services.entitlements.can_use_screener(user):
        log.info("entitlement.denied", user_id=user.id, feature="screener", plan=user.plan.value)
        raise EntitlementDenied("screener")
    return user
