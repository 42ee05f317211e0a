"""
gatorpay/flow/states.py

Purpose: Defines the OTP challenge states

- Enum for each step of the credential-then-code protocol
- Single source of truth for flow stages
- State transition validation
- PendingChallenge record held while a code is outstanding
"""

from enum import Enum
from typing import Dict, List
from dataclasses import dataclass, field
from datetime import datetime

from gatorpay.schemas.models import Purpose
from gatorpay.utils.time_utils import utc_now, is_otp_expired


class ChallengeState(str, Enum):
    """
    Defines all possible states of a login or registration challenge.
    """

    IDLE = "IDLE"
    CREDENTIALS_SUBMITTED = "CREDENTIALS_SUBMITTED"
    CHALLENGE_ISSUED = "CHALLENGE_ISSUED"
    VERIFIED = "VERIFIED"


# Valid state transitions - prevents skipping the code step
STATE_TRANSITIONS: Dict[ChallengeState, List[ChallengeState]] = {
    ChallengeState.IDLE: [
        ChallengeState.CREDENTIALS_SUBMITTED,
        ChallengeState.IDLE,
    ],
    ChallengeState.CREDENTIALS_SUBMITTED: [
        ChallengeState.CHALLENGE_ISSUED,
        ChallengeState.IDLE,  # Credentials rejected
    ],
    ChallengeState.CHALLENGE_ISSUED: [
        ChallengeState.VERIFIED,
        ChallengeState.CHALLENGE_ISSUED,  # Code rejected or resent
        ChallengeState.IDLE,  # Back to form / too many attempts
    ],
    ChallengeState.VERIFIED: [
        ChallengeState.IDLE,  # Screen reused after logout
    ],
}


def is_valid_transition(from_state: ChallengeState, to_state: ChallengeState) -> bool:
    """
    Checks if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is allowed, False otherwise
    """
    allowed_transitions = STATE_TRANSITIONS.get(from_state, [])
    return to_state in allowed_transitions


@dataclass
class PendingChallenge:
    """
    An issued-but-unverified verification code.
    Lives only in memory; a reload restarts from credential submission.
    """
    user_id: str
    email: str  # Masked destination, e.g. a***@b.com
    purpose: Purpose
    resend_cooldown: int = 0
    issued_at: datetime = field(default_factory=utc_now)
    failed_attempts: int = 0

    def is_expired(self, validity_minutes: int) -> bool:
        return is_otp_expired(self.issued_at, validity_minutes)
