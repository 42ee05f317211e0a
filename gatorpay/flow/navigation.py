"""
gatorpay/flow/navigation.py

Purpose: Guarded navigation

- Tracks the current destination as an observable
- Evaluates the guard registered for a destination and follows redirects
- Sends the user to login whenever the session store logs out
"""

from typing import Dict, Optional

from gatorpay.core.logging import get_logger, LogContext
from gatorpay.flow.guards import AuthGuard, GuestGuard, RouteGuard
from gatorpay.services.observable import Observable
from gatorpay.services.session_service import SessionStore
from gatorpay.utils import constants

logger = get_logger(__name__)

MAX_REDIRECTS = 5


def default_guards() -> Dict[str, RouteGuard]:
    """Guard for each destination of the client."""
    auth_guard = AuthGuard()
    guest_guard = GuestGuard()
    return {
        constants.LOGIN_ROUTE: guest_guard,
        constants.REGISTER_ROUTE: guest_guard,
        constants.DASHBOARD_ROUTE: auth_guard,
        constants.WALLET_ROUTE: auth_guard,
        constants.TRANSACTIONS_ROUTE: auth_guard,
    }


class Navigator:
    """
    Moves between destinations, consulting guards synchronously.
    """

    def __init__(self, store: SessionStore, guards: Optional[Dict[str, RouteGuard]] = None):
        self.store = store
        self.guards = guards if guards is not None else default_guards()
        self.current: Observable[Optional[str]] = Observable(None, name="route")
        self._unsubscribe = store.on_logout(self._on_logout)

    def navigate(self, route: str) -> bool:
        """
        Navigates to `route`, following guard redirects.

        Returns:
            True if `route` itself was reached, False if a guard redirected
        """
        target = route
        for _ in range(MAX_REDIRECTS):
            guard = self.guards.get(target)
            decision = guard.check(self.store) if guard else None

            if decision is None or decision.allowed:
                self.current.set(target)
                with LogContext(route=target):
                    logger.debug("Navigated")
                return target == route

            logger.info(f"Navigation to {target} redirected to {decision.redirect_to}")
            target = decision.redirect_to

        raise RuntimeError(f"Redirect loop while navigating to {route}")

    def close(self) -> None:
        self._unsubscribe()

    def _on_logout(self) -> None:
        self.navigate(constants.LOGIN_ROUTE)
