"""Pairing module for nfpair.

Provides the code-confirmation handshake:
- One-time code generation and input filtering
- Session state machine
- Pairing manager driving the network calls
- User-visible outcome messages
"""

from .codes import accept_code_input, generate_code, is_complete_code
from .messages import describe_outcome
from .pairing_manager import AddressStore, PairingManager
from .session import (
    ChallengeStatus,
    PairingChallenge,
    PairingOutcome,
    PairingSession,
    PairingState,
    transition,
)

__all__ = [
    "AddressStore",
    "ChallengeStatus",
    "PairingChallenge",
    "PairingManager",
    "PairingOutcome",
    "PairingSession",
    "PairingState",
    "accept_code_input",
    "describe_outcome",
    "generate_code",
    "is_complete_code",
    "transition",
]
