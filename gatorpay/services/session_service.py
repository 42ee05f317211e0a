"""
gatorpay/services/session_service.py

Purpose: Session store - single source of truth for authentication state

- Holds current user, current wallet and the pending OTP challenge
- Derives "is authenticated" (user loaded and token persisted)
- Restores a persisted session on startup, refreshes the profile on demand
- Clears everything on logout and signals dependents to go to login

Every mutation goes through establish / restore / refresh_profile / clear
(plus apply_wallet and track_challenge); subscribers are notified before
the call returns.
"""

from typing import Any, Callable, List, Optional

from gatorpay.core.exceptions import (
    BackendError,
    ChallengeStateError,
    SessionInvalid,
    TransientNetworkError,
)
from gatorpay.core.logging import get_logger, LogContext
from gatorpay.db.token_store import TokenStore
from gatorpay.flow.states import PendingChallenge
from gatorpay.schemas.models import Session, User, Wallet
from gatorpay.services.api_client import GatorPayAPI
from gatorpay.services.observable import Computed, Observable

logger = get_logger(__name__)


class SessionStore:
    """
    Authoritative holder of the session shared by guards and screens.
    """

    def __init__(self, api: GatorPayAPI, token_store: TokenStore):
        self.api = api
        self.token_store = token_store

        self.current_user: Observable[Optional[User]] = Observable(None, name="current_user")
        self.current_wallet: Observable[Optional[Wallet]] = Observable(None, name="current_wallet")
        self.pending_challenge: Observable[Optional[PendingChallenge]] = Observable(None, name="pending_challenge")
        self._token: Observable[Optional[str]] = Observable(token_store.get(), name="token")
        self.is_authenticated: Computed[bool] = Computed(
            lambda: self.current_user.value is not None and bool(self._token.value),
            self.current_user,
            self._token,
            name="is_authenticated",
        )

        self._logout_listeners: List[Callable[[], None]] = []
        self._challenge_owner: Any = None

    @property
    def token(self) -> Optional[str]:
        return self._token.value

    @property
    def session(self) -> Optional[Session]:
        """Current session bundle, or None when not authenticated."""
        if not self.is_authenticated.value or self.current_wallet.value is None:
            return None
        return Session(token=self.token, user=self.current_user.value, wallet=self.current_wallet.value)

    def on_logout(self, listener: Callable[[], None]) -> Callable[[], None]:
        """
        Registers a callback run after `clear()` tears a session down.

        Returns:
            Function removing the callback
        """
        self._logout_listeners.append(listener)

        def unsubscribe():
            if listener in self._logout_listeners:
                self._logout_listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def restore(self) -> bool:
        """
        Restores the session from the persisted token.

        No request is made when no token is persisted. Any failure clears
        the session and the token, so a half-valid session is never kept.

        Returns:
            True if a session was restored
        """
        token = self.token_store.get()
        if not token:
            logger.debug("No persisted token, nothing to restore")
            return False

        self._token.set(token)

        try:
            session = await self.api.me(token=token)
        except (BackendError, TransientNetworkError) as e:
            if self.token_store.get() != token:
                logger.info("Restore failed for a token that is no longer current, ignoring")
                return False
            logger.warning(f"Session restore failed, logging out: {e.message}")
            self.clear()
            return False

        if self.token_store.get() != token:
            logger.info("Discarding restored profile, token changed while loading")
            return False

        self._set_profile(session.user, session.wallet)
        with LogContext(user_id=session.user.id):
            logger.info("Session restored")
        return True

    def establish(self, session: Session) -> None:
        """
        Installs a session issued by a completed OTP verification.

        Raises:
            SessionInvalid: If the session carries no token
        """
        if not session.token:
            raise SessionInvalid("Cannot start a session without a token")

        self.token_store.set(session.token)
        self._token.set(session.token)
        self._set_profile(session.user, session.wallet)
        self.track_challenge(None)

        with LogContext(user_id=session.user.id):
            logger.info("Session established")

    async def refresh_profile(self) -> Session:
        """
        Re-fetches user and wallet with the current token.

        Raises:
            SessionInvalid: If there is no session or the fetch fails; the
                session has been cleared by then
        """
        token = self.token
        if not token:
            self.clear()
            raise SessionInvalid()

        try:
            session = await self.api.me(token=token)
        except (BackendError, TransientNetworkError) as e:
            if self.token == token:
                logger.warning(f"Profile refresh failed, logging out: {e.message}")
                self.clear()
            raise SessionInvalid(details=e.message) from e

        if self.token != token:
            logger.info("Discarding refreshed profile, session changed while loading")
            raise SessionInvalid()

        self._set_profile(session.user, session.wallet)
        logger.debug("Profile refreshed")
        return session

    def clear(self) -> None:
        """
        Logs out: removes the token, nulls user/wallet and the pending
        challenge, then signals dependents. Clearing an already cleared
        store changes nothing and signals nobody.
        """
        had_state = any((
            self.token_store.get(),
            self._token.value,
            self.current_user.value,
            self.current_wallet.value,
            self.pending_challenge.value,
        ))

        self.token_store.remove()
        self._token.set(None)
        self.current_user.set(None)
        self.current_wallet.set(None)
        self.track_challenge(None)

        if not had_state:
            return

        logger.info("Session cleared")
        for listener in list(self._logout_listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Logout listener failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Narrow mutations used by the wallet screen and the OTP flow
    # ------------------------------------------------------------------

    def apply_wallet(self, wallet: Wallet) -> None:
        """Replaces the wallet with one returned by a wallet operation."""
        user = self.current_user.value
        if user is None:
            logger.warning("Ignoring wallet update without an active session")
            return
        if wallet.user_id != user.id:
            logger.warning("Ignoring wallet update for another user")
            return
        self.current_wallet.set(wallet)

    def track_challenge(self, challenge: Optional[PendingChallenge], owner: Any = None) -> None:
        """
        Publishes the pending OTP challenge (or its removal).

        Args:
            challenge: Challenge to show, or None to drop it
            owner: Flow the challenge belongs to. A flow can only drop a
                challenge it owns; dropping another flow's is ignored.

        Raises:
            ChallengeStateError: If a challenge is started while authenticated
        """
        if challenge is None:
            if owner is not None and owner is not self._challenge_owner:
                return
            self._challenge_owner = None
            self.pending_challenge.set(None)
            return

        if self.is_authenticated.value:
            raise ChallengeStateError("Already signed in")
        self._challenge_owner = owner
        self.pending_challenge.set(challenge)

    def owns_challenge(self, owner: Any) -> bool:
        """True if the published challenge belongs to `owner`."""
        return self.pending_challenge.value is not None and self._challenge_owner is owner

    def _set_profile(self, user: User, wallet: Wallet) -> None:
        self.current_user.set(user)
        self.current_wallet.set(wallet)
