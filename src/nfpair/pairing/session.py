"""Pairing session state machine.

A PairingSession is an immutable value. Every change goes through
``transition(session, event)``, which returns the next session and never
performs I/O; PairingManager runs the network calls and feeds their results
back in as events.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Callable, Dict, Optional, Type, Union

from nfpair.address import normalize_address
from nfpair.pairing.codes import is_complete_code
from nfpair.server.version_probe import VersionCheck, VersionCheckStatus


class PairingState(Enum):
    """Pairing session states."""

    IDLE = auto()
    PROBING = auto()
    DISPATCHING = auto()
    AWAITING_CONFIRMATION = auto()
    REJECTED = auto()
    CONFIRMED = auto()


class ChallengeStatus(Enum):
    """Lifecycle of a single challenge."""

    PENDING = auto()
    CONFIRMED = auto()
    REJECTED = auto()
    EXPIRED = auto()
    CANCELLED = auto()


class PairingOutcome(Enum):
    """Last user-visible result of the session."""

    EMPTY_ADDRESS = auto()
    VERSION_MISMATCH = auto()
    CONNECTION_FAILURE = auto()
    CODE_MISMATCH = auto()
    CONFIRMED = auto()
    CANCELLED = auto()
    EXPIRED = auto()


@dataclass(frozen=True)
class PairingChallenge:
    """A one-time code shown on the server.

    Attributes:
        code: 6-digit code the user must type back.
        issued_at: Unix timestamp when the code was generated.
        status: Current challenge status.
        failed_attempts: Wrong submissions so far.
    """

    code: str
    issued_at: float = field(default_factory=time.time)
    status: ChallengeStatus = ChallengeStatus.PENDING
    failed_attempts: int = 0

    def with_status(self, status: ChallengeStatus) -> "PairingChallenge":
        return replace(self, status=status)


@dataclass(frozen=True)
class PairingSession:
    """Snapshot of one settings-view pairing session.

    Attributes:
        state: Current pairing state.
        address: Normalized server address of the current attempt.
        challenge: Live challenge, if any.
        outcome: Result to report to the user.
        attempt: Token of the current attempt; results tagged with an older
            token are stale.
        discarded: Challenge retired by the last transition, with its
            terminal status.
    """

    state: PairingState = PairingState.IDLE
    address: str = ""
    challenge: Optional[PairingChallenge] = None
    outcome: Optional[PairingOutcome] = None
    attempt: int = 0
    discarded: Optional[PairingChallenge] = None

    @property
    def is_busy(self) -> bool:
        """A network call for this attempt is in flight."""
        return self.state in (PairingState.PROBING, PairingState.DISPATCHING)

    @property
    def awaiting_confirmation(self) -> bool:
        """The user may type and submit the code."""
        return self.state in (
            PairingState.AWAITING_CONFIRMATION,
            PairingState.REJECTED,
        )


# Events


@dataclass(frozen=True)
class Connect:
    address: str


@dataclass(frozen=True)
class VersionChecked:
    attempt: int
    check: VersionCheck
    challenge: Optional[PairingChallenge] = None  # required when check matches


@dataclass(frozen=True)
class Dispatched:
    attempt: int
    ok: bool


@dataclass(frozen=True)
class Submit:
    entered: str


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class CloseElapsed:
    attempt: int


@dataclass(frozen=True)
class Expire:
    attempt: int


PairingEvent = Union[
    Connect, VersionChecked, Dispatched, Submit, Cancel, CloseElapsed, Expire
]


def _idle(
    session: PairingSession,
    outcome: Optional[PairingOutcome],
    retired: Optional[ChallengeStatus] = None,
) -> PairingSession:
    discarded = None
    if session.challenge is not None and retired is not None:
        discarded = session.challenge.with_status(retired)
    return PairingSession(
        state=PairingState.IDLE,
        outcome=outcome,
        attempt=session.attempt,
        discarded=discarded,
    )


def _on_connect(session: PairingSession, event: Connect) -> PairingSession:
    if session.is_busy:
        return session
    if not event.address.strip():
        return replace(session, outcome=PairingOutcome.EMPTY_ADDRESS, discarded=None)

    discarded = None
    if session.challenge is not None:
        # Only one challenge may be live; a new attempt supersedes it
        discarded = session.challenge.with_status(ChallengeStatus.EXPIRED)
    return PairingSession(
        state=PairingState.PROBING,
        address=normalize_address(event.address),
        attempt=session.attempt + 1,
        discarded=discarded,
    )


def _on_version_checked(
    session: PairingSession, event: VersionChecked
) -> PairingSession:
    if session.state is not PairingState.PROBING or event.attempt != session.attempt:
        return session

    status = event.check.status
    if status is VersionCheckStatus.MATCH:
        if event.challenge is None:
            raise ValueError("Matching version check needs a challenge")
        return replace(
            session,
            state=PairingState.DISPATCHING,
            challenge=event.challenge,
            outcome=None,
            discarded=None,
        )
    if status is VersionCheckStatus.UNREACHABLE:
        return _idle(session, PairingOutcome.CONNECTION_FAILURE)
    # MISMATCH and MALFORMED look the same to the user
    return _idle(session, PairingOutcome.VERSION_MISMATCH)


def _on_dispatched(session: PairingSession, event: Dispatched) -> PairingSession:
    if (
        session.state is not PairingState.DISPATCHING
        or event.attempt != session.attempt
    ):
        return session
    if not event.ok:
        return _idle(session, PairingOutcome.CONNECTION_FAILURE)
    return replace(session, state=PairingState.AWAITING_CONFIRMATION, discarded=None)


def _on_submit(session: PairingSession, event: Submit) -> PairingSession:
    if not session.awaiting_confirmation or session.challenge is None:
        return session
    if not is_complete_code(event.entered):
        return session

    challenge = session.challenge.with_status(ChallengeStatus.PENDING)
    if event.entered == challenge.code:
        return replace(
            session,
            state=PairingState.CONFIRMED,
            challenge=challenge.with_status(ChallengeStatus.CONFIRMED),
            outcome=PairingOutcome.CONFIRMED,
            discarded=None,
        )
    return replace(
        session,
        state=PairingState.REJECTED,
        challenge=replace(
            challenge,
            status=ChallengeStatus.REJECTED,
            failed_attempts=challenge.failed_attempts + 1,
        ),
        outcome=PairingOutcome.CODE_MISMATCH,
        discarded=None,
    )


def _on_cancel(session: PairingSession, event: Cancel) -> PairingSession:
    if session.state is PairingState.IDLE:
        return session
    return _idle(session, PairingOutcome.CANCELLED, ChallengeStatus.CANCELLED)


def _on_close_elapsed(
    session: PairingSession, event: CloseElapsed
) -> PairingSession:
    if session.state is not PairingState.CONFIRMED or event.attempt != session.attempt:
        return session
    return _idle(session, None, ChallengeStatus.CONFIRMED)


def _on_expire(session: PairingSession, event: Expire) -> PairingSession:
    if not session.awaiting_confirmation or event.attempt != session.attempt:
        return session
    return _idle(session, PairingOutcome.EXPIRED, ChallengeStatus.EXPIRED)


_HANDLERS: Dict[Type, Callable[[PairingSession, object], PairingSession]] = {
    Connect: _on_connect,
    VersionChecked: _on_version_checked,
    Dispatched: _on_dispatched,
    Submit: _on_submit,
    Cancel: _on_cancel,
    CloseElapsed: _on_close_elapsed,
    Expire: _on_expire,
}


def transition(session: PairingSession, event: PairingEvent) -> PairingSession:
    """Apply an event to a session.

    Events that do not apply to the current state, and results tagged with
    a stale attempt, leave the session unchanged.

    Args:
        session: Current session.
        event: Event to apply.

    Returns:
        The next session (the same object when the event is ignored).

    Raises:
        TypeError: If event is not a pairing event.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown pairing event: {event!r}")
    return handler(session, event)
