"""User-visible text for pairing outcomes."""

from typing import Optional

from nfpair.pairing.session import PairingOutcome

_MESSAGES = {
    PairingOutcome.EMPTY_ADDRESS: "Please enter a server address first",
    PairingOutcome.VERSION_MISMATCH: (
        "Server version is not compatible, version {required_version} is required"
    ),
    PairingOutcome.CONNECTION_FAILURE: (
        "Cannot reach the server, please check that the address is correct"
    ),
    PairingOutcome.CODE_MISMATCH: "Incorrect verification code, please try again",
    PairingOutcome.CONFIRMED: "Verification succeeded, server address saved",
    PairingOutcome.CANCELLED: "Pairing cancelled",
    PairingOutcome.EXPIRED: "Verification code expired, please connect again",
}

# Outcomes that end an attempt badly
FAILURES = frozenset(
    {
        PairingOutcome.EMPTY_ADDRESS,
        PairingOutcome.VERSION_MISMATCH,
        PairingOutcome.CONNECTION_FAILURE,
        PairingOutcome.CODE_MISMATCH,
        PairingOutcome.EXPIRED,
    }
)


def describe_outcome(outcome: Optional[PairingOutcome], required_version: str) -> str:
    """Render an outcome as a message ("" for no outcome)."""
    if outcome is None:
        return ""
    return _MESSAGES[outcome].format(required_version=required_version)


def is_failure(outcome: Optional[PairingOutcome]) -> bool:
    return outcome in FAILURES
