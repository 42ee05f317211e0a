"""
gatorpay/flow/guards.py

Purpose: Navigation guards

- AuthGuard: destination requires a session, otherwise redirect to login
- GuestGuard: destination is for signed-out users (login, register),
  otherwise redirect to the dashboard

Guards are pure and synchronous: they read the session store as it is at
navigation time and never call the backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from gatorpay.services.session_service import SessionStore
from gatorpay.utils.constants import DEFAULT_AUTHENTICATED_ROUTE, LOGIN_ROUTE


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect_to: Optional[str] = None

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(allowed=True)

    @classmethod
    def redirect(cls, route: str) -> "GuardDecision":
        return cls(allowed=False, redirect_to=route)


class RouteGuard(ABC):
    """Strategy deciding whether navigation to a destination may proceed."""

    @abstractmethod
    def check(self, store: SessionStore) -> GuardDecision:
        pass


class AuthGuard(RouteGuard):
    """Protects destinations that require authentication."""

    def __init__(self, login_route: str = LOGIN_ROUTE):
        self.login_route = login_route

    def check(self, store: SessionStore) -> GuardDecision:
        if store.is_authenticated.value:
            return GuardDecision.allow()
        return GuardDecision.redirect(self.login_route)


class GuestGuard(RouteGuard):
    """Protects destinations that only make sense while signed out."""

    def __init__(self, landing_route: str = DEFAULT_AUTHENTICATED_ROUTE):
        self.landing_route = landing_route

    def check(self, store: SessionStore) -> GuardDecision:
        if not store.is_authenticated.value:
            return GuardDecision.allow()
        return GuardDecision.redirect(self.landing_route)
