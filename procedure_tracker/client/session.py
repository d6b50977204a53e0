"""
Session state for the client: who is signed in, and which top-level view
follows from that.

``SessionContext`` owns the session and notifies subscribers whenever it
changes. ``SessionGate`` only listens; it never switches views itself.
``AuthForm`` drives sign-in and sign-up through the context.
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

from procedure_tracker.client.api_client import (
    ProcedureServiceClient,
    ProcedureServiceError,
    ProfileRecord,
    Session,
)
from procedure_tracker.models.profile import ProfileRole

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
SIGN_UP_NOTICE = "Account created! Please sign in."

Listener = Callable[[Optional[Session]], None]


class SessionContext:
    """Holds the current session from ``initialize()`` until ``close()``."""

    def __init__(self, client: ProcedureServiceClient):
        self.client = client
        self._session: Optional[Session] = None
        self._resolved = False
        self._listeners: List[Listener] = []

    @property
    def resolved(self) -> bool:
        """False until the initial session lookup has finished."""
        return self._resolved

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def profile(self) -> Optional[ProfileRecord]:
        return self._session.profile if self._session else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for session changes. Returns a function that unsubscribes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_session(self, session: Optional[Session]) -> None:
        self._session = session
        self.client.access_token = session.access_token if session else None
        for listener in list(self._listeners):
            listener(session)

    async def initialize(self, access_token: Optional[str] = None, refresh_token: Optional[str] = None) -> None:
        """
        Resolve the starting session. A stored access token is kept only if
        the service still accepts it; otherwise the refresh token, if any,
        is exchanged for a new one.
        """
        session = None
        if access_token:
            session = await self._restore(access_token, refresh_token)
        if session is None and refresh_token:
            try:
                new_token = await self.client.refresh(refresh_token)
            except ProcedureServiceError as e:
                logger.info(f"Stored refresh token rejected: {e.message}")
            else:
                session = await self._restore(new_token, refresh_token)
        self._resolved = True
        self._set_session(session)

    async def _restore(self, access_token: str, refresh_token: Optional[str]) -> Optional[Session]:
        self.client.access_token = access_token
        try:
            profile = await self.client.get_me()
        except ProcedureServiceError as e:
            logger.info(f"Stored session rejected: {e.message}")
            self.client.access_token = None
            return None
        return Session(access_token=access_token, refresh_token=refresh_token, profile=profile)

    async def sign_in(self, email: str, password: str) -> Session:
        session = await self.client.sign_in(email, password)
        self._set_session(session)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        full_name: str,
        role: ProfileRole = ProfileRole.STAFF,
    ) -> ProfileRecord:
        """Registers without signing in; the session is unchanged."""
        return await self.client.sign_up(email, password, full_name, role)

    async def sign_out(self) -> None:
        if self._session is None:
            return
        try:
            await self.client.sign_out()
        except ProcedureServiceError as e:
            logger.warning(f"Sign-out call failed, clearing session anyway: {e.message}")
        self._set_session(None)

    def close(self) -> None:
        """Drop all subscribers."""
        self._listeners.clear()


class View(str, Enum):
    LOADING = "loading"
    AUTH = "auth"
    DASHBOARD = "dashboard"


class SessionGate:
    """Picks the top-level view from the session state."""

    def __init__(self, context: SessionContext, on_change: Optional[Callable[["View"], None]] = None):
        self.context = context
        self.on_change = on_change
        self.view = self._compute()
        self._unsubscribe = context.subscribe(self._session_changed)

    def _compute(self) -> View:
        if not self.context.resolved:
            return View.LOADING
        if self.context.session is None:
            return View.AUTH
        return View.DASHBOARD

    def _session_changed(self, session: Optional[Session]) -> None:
        view = self._compute()
        if view != self.view:
            self.view = view
            if self.on_change:
                self.on_change(view)

    def close(self) -> None:
        self._unsubscribe()


class AuthMode(str, Enum):
    SIGN_IN = "sign_in"
    SIGN_UP = "sign_up"


class AuthForm:
    """Sign-in / sign-up form state."""

    def __init__(self, context: SessionContext):
        self.context = context
        self.mode = AuthMode.SIGN_IN
        self.email = ""
        self.password = ""
        self.full_name = ""
        self.role = ProfileRole.STAFF
        self.error = ""
        self.notice = ""
        self.loading = False

    def toggle_mode(self) -> None:
        self.mode = AuthMode.SIGN_UP if self.mode == AuthMode.SIGN_IN else AuthMode.SIGN_IN
        self.error = ""
        self.notice = ""

    async def submit(self) -> bool:
        """Returns True on success. Failures leave the message in ``error``."""
        self.error = ""
        self.notice = ""

        if self.mode == AuthMode.SIGN_UP and len(self.password) < MIN_PASSWORD_LENGTH:
            self.error = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            return False

        self.loading = True
        try:
            if self.mode == AuthMode.SIGN_IN:
                await self.context.sign_in(self.email, self.password)
            else:
                await self.context.sign_up(self.email, self.password, self.full_name, self.role)
                self.notice = SIGN_UP_NOTICE
                self.mode = AuthMode.SIGN_IN
                self.password = ""
            return True
        except ProcedureServiceError as e:
            self.error = e.message
            return False
        finally:
            self.loading = False
