"""
ThetaFlowz - Core API Routes

Health, session (register / login / logout / me / plan) and entitlements.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

import structlog

from thetaflowz import __version__
from thetaflowz.auth.dependencies import get_current_user, get_services
from thetaflowz.models import EntitlementSummary, HealthCheck, Plan, User
from thetaflowz.services import Services

log = structlog.get_logger(__name__)

health_router = APIRouter()
auth_router = APIRouter(prefix="/auth")
entitlements_router = APIRouter()


# ──────────────────────────────────────────────
# Request/Response Models
# ──────────────────────────────────────────────


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    name: Optional[str] = Field(None, max_length=100)
    plan: Plan = Plan.FREE


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")


class PlanChangeRequest(BaseModel):
    plan: Plan


class SessionResponse(BaseModel):
    user: User
    entitlements: EntitlementSummary


def _session_response(services: Services, user: User) -> SessionResponse:
    return SessionResponse(user=user, entitlements=services.entitlements.summarize(user))


# ──────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────


@health_router.get("/health", response_model=HealthCheck)
async def health_check(services: Services = Depends(get_services)):
    """Liveness plus circuit breaker state per market data provider."""
    providers = services.aggregator.provider_status()
    degraded = any(state != "closed" for state in providers.values())
    return HealthCheck(
        status="degraded" if degraded else "ok",
        version=__version__,
        providers=providers,
        uptime_seconds=services.uptime_seconds,
    )


# ──────────────────────────────────────────────
# Session
# ──────────────────────────────────────────────


@auth_router.post("/register", response_model=SessionResponse, status_code=201)
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    if body.plan is Plan.EXPIRED:
        raise HTTPException(status_code=400, detail="Cannot register with an expired plan")
    user = services.sessions.register(body.email, body.name, body.plan)
    return _session_response(services, user)


@auth_router.post("/login", response_model=SessionResponse)
async def login(body: LoginRequest, services: Services = Depends(get_services)):
    user = services.sessions.login(body.email)
    return _session_response(services, user)


@auth_router.post("/logout")
async def logout(services: Services = Depends(get_services)):
    services.sessions.logout()
    return {"message": "Logged out"}


@auth_router.get("/me", response_model=SessionResponse)
async def me(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    return _session_response(services, user)


@auth_router.post("/plan", response_model=SessionResponse)
async def change_plan(
    body: PlanChangeRequest,
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Upgrade or cancel. Called by the billing backend once payment settles."""
    if body.plan is Plan.EXPIRED:
        raise HTTPException(status_code=400, detail="The expired state cannot be selected")
    updated = services.sessions.change_plan(body.plan)
    log.info("plan.changed", user_id=user.id, old=user.plan.value, new=updated.plan.value)
    return _session_response(services, updated)


# ──────────────────────────────────────────────
# Entitlements
# ──────────────────────────────────────────────


@entitlements_router.get("/entitlements", response_model=EntitlementSummary)
async def entitlements(
    user: User = Depends(get_current_user),
    services: Services = Depends(get_services),
):
    """Feature access, remaining free days and screener trial status."""
    return services.entitlements.summarize(user)
