"""Explicit state machine for account validity.

States::

    unchecked --profile_active--> valid
    unchecked --profile_inactive/profile_missing--> invalid_pending_logout
    valid --profile_inactive/profile_missing--> invalid_pending_logout
    invalid_pending_logout --logged_out--> unchecked

``invalid_pending_logout`` only leaves through ``logged_out``: once an
account is found invalid, later checks cannot silently revalidate the
session.
"""

from enum import Enum
from typing import Optional

from duri_tracking.database.models import UserProfile
from duri_tracking.schemas.auth import AccountValidation, UserResponse

INACTIVE_MESSAGE = "Sua conta foi desativada. Entre em contato com o administrador."
DELETED_MESSAGE = "Sua conta não foi encontrada. Entre em contato com o administrador."


class AccountState(str, Enum):
    UNCHECKED = "unchecked"
    VALID = "valid"
    INVALID_PENDING_LOGOUT = "invalid_pending_logout"


class AccountEvent(str, Enum):
    PROFILE_ACTIVE = "profile_active"
    PROFILE_INACTIVE = "profile_inactive"
    PROFILE_MISSING = "profile_missing"
    LOGGED_OUT = "logged_out"


TRANSITIONS: dict[tuple[AccountState, AccountEvent], AccountState] = {
    (AccountState.UNCHECKED, AccountEvent.PROFILE_ACTIVE): AccountState.VALID,
    (AccountState.UNCHECKED, AccountEvent.PROFILE_INACTIVE): AccountState.INVALID_PENDING_LOGOUT,
    (AccountState.UNCHECKED, AccountEvent.PROFILE_MISSING): AccountState.INVALID_PENDING_LOGOUT,
    (AccountState.VALID, AccountEvent.PROFILE_ACTIVE): AccountState.VALID,
    (AccountState.VALID, AccountEvent.PROFILE_INACTIVE): AccountState.INVALID_PENDING_LOGOUT,
    (AccountState.VALID, AccountEvent.PROFILE_MISSING): AccountState.INVALID_PENDING_LOGOUT,
    (AccountState.VALID, AccountEvent.LOGGED_OUT): AccountState.UNCHECKED,
    (AccountState.INVALID_PENDING_LOGOUT, AccountEvent.LOGGED_OUT): AccountState.UNCHECKED,
}


class AccountStatusMachine:
    """Tracks one session's account state across validity checks."""

    def __init__(self, state: AccountState = AccountState.UNCHECKED):
        self.state = state
        self.code: Optional[str] = None
        self.message = ""

    def fire(self, event: AccountEvent) -> AccountState:
        """Apply an event; events with no transition leave the state unchanged."""
        self.state = TRANSITIONS.get((self.state, event), self.state)
        if event is AccountEvent.LOGGED_OUT:
            self.code = None
            self.message = ""
        return self.state

    def evaluate(self, profile: Optional[UserProfile]) -> AccountValidation:
        """Feed one profile lookup into the machine and describe the result."""
        if profile is None:
            event, code, message = AccountEvent.PROFILE_MISSING, "USER_DELETED", DELETED_MESSAGE
        elif not profile.active:
            event, code, message = AccountEvent.PROFILE_INACTIVE, "USER_INACTIVE", INACTIVE_MESSAGE
        else:
            event, code, message = AccountEvent.PROFILE_ACTIVE, None, ""

        previous = self.state
        self.fire(event)
        if self.state is AccountState.INVALID_PENDING_LOGOUT and previous is not self.state:
            self.code, self.message = code, message

        valid = self.state is AccountState.VALID
        return AccountValidation(
            valid=valid,
            state=self.state.value,
            should_logout=self.state is AccountState.INVALID_PENDING_LOGOUT,
            code=self.code,
            message=self.message,
            user=UserResponse.model_validate(profile) if profile is not None and valid else None,
        )
