"""
Role access guard for protected views.

Each page view builds a fresh AccessGuard and awaits evaluate() once. The
guard asks the gateway for the current session, then for that user's
profile, and settles in a terminal state:

    CHECKING -> DENIED(UNAUTHENTICATED)   no session, no profile, or gateway failure
    CHECKING -> DENIED(ROLE_MISMATCH)     role not in allowed_roles
    CHECKING -> GRANTED(profile)          otherwise

A terminal state never goes back to CHECKING. Gateway failures fail closed
and are logged; nothing except task cancellation escapes evaluate().
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Union

from src.common.logger import get_logger
from src.common.repositories.base import (
    GatewayError,
    MarketplaceGatewayInterface,
    RecordNotFoundError,
)
from src.common.types import Profile, Role, Session

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
UNAUTHORIZED_PATH = "/unauthorized"


class GuardStatus(str, Enum):
    CHECKING = "checking"
    DENIED = "denied"
    GRANTED = "granted"


class DenialReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    ROLE_MISMATCH = "role_mismatch"


@dataclass(frozen=True)
class GuardState:
    """Immutable guard state. `profile` is set only when GRANTED."""
    status: GuardStatus
    reason: Optional[DenialReason] = None
    profile: Optional[Profile] = None

    @classmethod
    def checking(cls) -> "GuardState":
        return cls(GuardStatus.CHECKING)

    @classmethod
    def denied(cls, reason: DenialReason) -> "GuardState":
        return cls(GuardStatus.DENIED, reason=reason)

    @classmethod
    def granted(cls, profile: Profile) -> "GuardState":
        return cls(GuardStatus.GRANTED, profile=profile)

    @property
    def is_terminal(self) -> bool:
        return self.status is not GuardStatus.CHECKING

    @property
    def redirect_to(self) -> Optional[str]:
        """Where a denied caller must be sent; None unless DENIED."""
        if self.status is not GuardStatus.DENIED:
            return None
        if self.reason is DenialReason.ROLE_MISMATCH:
            return UNAUTHORIZED_PATH
        return LOGIN_PATH


@dataclass(frozen=True)
class ResolvedIdentity:
    """A session together with the profile it resolved to."""
    session: Session
    profile: Profile

    @property
    def role(self) -> Role:
        return self.profile.role


async def resolve_session(gateway: MarketplaceGatewayInterface) -> Optional[ResolvedIdentity]:
    """
    Determine who the caller is.

    Returns:
        ResolvedIdentity, or None when there is no session or the session's
        profile does not exist (an unresolved identity is not retried)

    Raises:
        GatewayError: If the backend could not be asked
    """
    session = await gateway.get_current_session()
    if session is None:
        logger.debug("No session found")
        return None

    try:
        profile = await gateway.get_profile(session.user_id)
    except RecordNotFoundError:
        logger.warning(f"No profile found for user {session.user_id}")
        return None

    return ResolvedIdentity(session=session, profile=profile)


def parse_roles(roles: Iterable[Union[Role, str]]) -> FrozenSet[Role]:
    """Parse allowed-role names; unknown names are dropped and logged."""
    parsed = set()
    for role in roles:
        value = Role.parse(role)
        if value is None:
            logger.warning(f"Ignoring unknown role in allowed_roles: {role!r}")
            continue
        parsed.add(value)
    return frozenset(parsed)


def role_allowed(role: Optional[Role], allowed_roles: FrozenSet[Role]) -> bool:
    """Empty allowed_roles admits any resolved profile."""
    if not allowed_roles:
        return True
    if role is Role.CLIENT:
        return Role.CLIENT in allowed_roles
    if role is Role.WORKER:
        return Role.WORKER in allowed_roles
    if role is Role.ADMIN:
        return Role.ADMIN in allowed_roles
    return False


class AccessGuard:
    """
    One-shot access check for a single page view.

    Usage:
        guard = AccessGuard(gateway, allowed_roles=[Role.CLIENT])
        state = await guard.evaluate()
        if state.status is GuardStatus.DENIED:
            return redirect(state.redirect_to)
    """

    def __init__(
        self,
        gateway: MarketplaceGatewayInterface,
        allowed_roles: Iterable[Union[Role, str]] = (),
        request_id: Optional[str] = None,
    ):
        requested = list(allowed_roles)
        self._gateway = gateway
        self._allowed_roles = parse_roles(requested)
        # A caller that named roles is restricted even if none of them parse
        self._restricted = bool(requested)
        self._state = GuardState.checking()
        self._detached = False
        self._lock = asyncio.Lock()
        self._log = get_logger(__name__, request_id=request_id, component="guard")

    @property
    def state(self) -> GuardState:
        return self._state

    @property
    def allowed_roles(self) -> FrozenSet[Role]:
        return self._allowed_roles

    def detach(self) -> None:
        """The hosting view is gone; results arriving later are discarded."""
        self._detached = True

    def _decide(self, identity: Optional[ResolvedIdentity]) -> GuardState:
        if identity is None:
            return GuardState.denied(DenialReason.UNAUTHENTICATED)
        if self._restricted and not self._allowed_roles:
            self._log.warning("No recognised role in allowed_roles; denying")
            return GuardState.denied(DenialReason.ROLE_MISMATCH)
        if not role_allowed(identity.role, self._allowed_roles):
            self._log.info(
                f"Role {identity.role.value} not allowed "
                f"(required: {sorted(r.value for r in self._allowed_roles)})"
            )
            return GuardState.denied(DenialReason.ROLE_MISMATCH)
        return GuardState.granted(identity.profile)

    async def evaluate(self) -> GuardState:
        """
        Run the check once and return the terminal state.

        Calls made while a check is in flight wait for it and get the same
        result. After detach() the outcome is dropped and the state stays
        CHECKING.
        """
        async with self._lock:
            if self._state.is_terminal or self._detached:
                return self._state

            try:
                identity = await resolve_session(self._gateway)
            except GatewayError as e:
                self._log.warning(f"Backend unavailable during access check, denying: {e}")
                identity = None
            except Exception as e:
                self._log.exception(f"Unexpected error during access check, denying: {e}")
                identity = None

            outcome = self._decide(identity)
            if self._detached:
                self._log.debug(f"View torn down; discarding {outcome.status.value} result")
                return self._state

            self._state = outcome
            self._log.debug(f"Access check settled: {outcome.status.value}")
            return outcome
