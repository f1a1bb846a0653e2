"""
ThetaFlowz - Auth Module

Plan-based entitlements and the persisted user session.
"""

from thetaflowz.auth.entitlements import EntitlementEngine  # noqa: F401
from thetaflowz.auth.session import SessionManager  # noqa: F401

__all__ = ["EntitlementEngine", "SessionManager"]
