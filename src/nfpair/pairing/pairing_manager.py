"""Pairing manager orchestrates the complete pairing flow.

Runs the version check and code delivery for the current attempt, feeds
their results into the session state machine, persists the server address
once the user confirms the code, and owns the timers that close or expire
a session.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

from nfpair.errors import PairingBusyError
from nfpair.pairing.codes import generate_code
from nfpair.pairing.messages import describe_outcome
from nfpair.pairing.session import (
    Cancel,
    CloseElapsed,
    Connect,
    Dispatched,
    Expire,
    PairingChallenge,
    PairingEvent,
    PairingSession,
    PairingState,
    Submit,
    VersionChecked,
    transition,
)
from nfpair.server.version_probe import VersionCheck

logger = logging.getLogger(__name__)


class VersionGate(Protocol):
    """Protocol for the server version check."""

    @property
    def required_version(self) -> str:
        ...

    async def probe(self, base_url: str) -> VersionCheck:
        """Check the server's protocol version."""
        ...


class CodeChannel(Protocol):
    """Protocol for delivering the code to the server."""

    async def dispatch(self, base_url: str, code: str) -> bool:
        """Show the code on the server. True on success."""
        ...


class AddressStore(Protocol):
    """Protocol for confirmed server address storage."""

    async def save_server_address(self, address: str) -> None:
        """Store the confirmed server address."""
        ...


class PairingManager:
    """Drives one pairing session at a time.

    Only one network call runs per attempt. ``cancel()`` does not abort an
    in-flight request; its result is dropped when it arrives because the
    session has moved on.
    """

    # Seconds the success message stays before the session resets
    CONFIRM_DELAY = 1.5

    def __init__(
        self,
        probe: VersionGate,
        dispatcher: CodeChannel,
        address_store: AddressStore,
        confirm_delay: float = CONFIRM_DELAY,
        challenge_ttl: Optional[float] = None,
        code_generator: Callable[[], str] = generate_code,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize pairing manager.

        Args:
            probe: Server version check.
            dispatcher: Delivers the code to the server.
            address_store: Receives the address once pairing is confirmed.
            confirm_delay: Seconds before a confirmed session resets.
            challenge_ttl: Seconds a delivered code stays valid. None keeps
                it valid until confirmed, cancelled or superseded.
            code_generator: Source of one-time codes.
            clock: Time source for challenge timestamps.
        """
        self.probe = probe
        self.dispatcher = dispatcher
        self.address_store = address_store
        self.confirm_delay = confirm_delay
        self.challenge_ttl = challenge_ttl
        self._generate_code = code_generator
        self._clock = clock

        self._session = PairingSession()
        self._close_task: Optional[asyncio.Task] = None
        self._expiry_task: Optional[asyncio.Task] = None
        self._saving = False
        self._on_change: Optional[Callable[[PairingSession], None]] = None

    @property
    def session(self) -> PairingSession:
        """Current session snapshot."""
        return self._session

    @property
    def message(self) -> str:
        """User-visible text for the current outcome."""
        return describe_outcome(self._session.outcome, self.probe.required_version)

    def on_change(self, callback: Callable[[PairingSession], None]) -> None:
        """Register callback for every session change.

        Args:
            callback: Called with the new session.
        """
        self._on_change = callback

    async def connect(self, address: str) -> PairingSession:
        """Start a pairing attempt against address.

        Checks the server version, issues a fresh challenge and sends its
        code to the server. Any live challenge is discarded first.

        Args:
            address: Server address as typed by the user.

        Returns:
            The session once this attempt settles (awaiting confirmation on
            success, idle with a failure outcome otherwise).

        Raises:
            PairingBusyError: If a network call or an address save is
                already in flight.
        """
        if self._session.is_busy or self._saving:
            raise PairingBusyError("Pairing attempt already in progress")

        session = self._apply(Connect(address))
        if session.state is not PairingState.PROBING:
            return session
        self._cancel_timers()

        attempt = session.attempt
        base_url = session.address
        logger.info(f"Checking server version at {base_url}")

        check = await self._guarded(attempt, self.probe.probe(base_url))
        challenge = None
        if check.matches and self._is_current(attempt, PairingState.PROBING):
            challenge = PairingChallenge(
                code=self._generate_code(), issued_at=self._clock()
            )
        session = self._apply(VersionChecked(attempt, check, challenge))
        if challenge is None or session.state is not PairingState.DISPATCHING:
            return session

        logger.info(f"Sending verification code to {base_url}")
        ok = await self._guarded(
            attempt, self.dispatcher.dispatch(base_url, challenge.code)
        )
        session = self._apply(Dispatched(attempt, ok))

        if session.awaiting_confirmation and self.challenge_ttl is not None:
            self._expiry_task = asyncio.create_task(self._expire_after(attempt))
        return session

    async def submit(self, entered: str) -> PairingSession:
        """Submit the code the user typed.

        A matching code confirms the session: the address is saved, and
        the session resets after ``confirm_delay``. A wrong code keeps the
        same challenge open for another try.

        Raises:
            StorageError: If the address could not be saved. The session
                stays open so the user can retry.
        """
        if self._challenge_expired():
            self._cancel_timers()
            self._apply(Expire(self._session.attempt))
            logger.info("Verification code expired")

        current = self._session
        candidate = transition(current, Submit(entered))
        if candidate is current or self._saving:
            logger.debug("Submission ignored")
            return current

        if candidate.state is PairingState.CONFIRMED:
            self._saving = True
            try:
                await self.address_store.save_server_address(candidate.address)
            finally:
                self._saving = False
            if self._session is not current:
                logger.info(
                    f"Pairing cancelled after {candidate.address} was saved"
                )
                return self._session
            self._cancel_timers()
            self._commit(candidate)
            logger.info(f"Paired with {candidate.address}")
            self._close_task = asyncio.create_task(
                self._close_after(candidate.attempt)
            )
            return candidate

        self._commit(candidate)
        logger.info("Verification code rejected")
        return candidate

    def cancel(self) -> PairingSession:
        """Abandon the current attempt.

        Nothing is sent to the server; a late response is ignored. An
        address save already in progress is not rolled back: the address
        stays stored while ``submit`` returns the cancelled session.
        """
        self._cancel_timers()
        return self._apply(Cancel())

    async def wait_closed(self) -> None:
        """Wait for a confirmed session to reset."""
        task = self._close_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(self) -> None:
        """Stop pending timers. The session itself is left as is."""
        tasks = [t for t in (self._close_task, self._expiry_task) if t is not None]
        self._cancel_timers()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.debug("Pairing manager closed")

    async def _guarded(self, attempt: int, call):
        """Await a network call, dropping the attempt if it never returns."""
        try:
            return await call
        except (Exception, asyncio.CancelledError):
            if self._is_current(attempt) and self._session.is_busy:
                self._apply(Cancel())
            raise

    async def _close_after(self, attempt: int) -> None:
        await asyncio.sleep(self.confirm_delay)
        self._apply(CloseElapsed(attempt))

    async def _expire_after(self, attempt: int) -> None:
        await asyncio.sleep(self.challenge_ttl)
        session = self._apply(Expire(attempt))
        if session.discarded is not None:
            logger.info("Verification code expired")

    def _challenge_expired(self) -> bool:
        # The timer may not have run yet if the loop was blocked
        challenge = self._session.challenge
        if self.challenge_ttl is None or challenge is None:
            return False
        if not self._session.awaiting_confirmation:
            return False
        return self._clock() - challenge.issued_at >= self.challenge_ttl

    def _is_current(self, attempt: int, state: Optional[PairingState] = None) -> bool:
        if self._session.attempt != attempt:
            return False
        return state is None or self._session.state is state

    def _cancel_timers(self) -> None:
        for task in (self._close_task, self._expiry_task):
            if task is not None and not task.done():
                task.cancel()
        self._close_task = None
        self._expiry_task = None

    def _apply(self, event: PairingEvent) -> PairingSession:
        session = transition(self._session, event)
        if session is not self._session:
            self._commit(session)
        return session

    def _commit(self, session: PairingSession) -> None:
        previous = self._session.state
        self._session = session
        if session.state is not previous:
            logger.debug(f"Pairing state: {previous.name} -> {session.state.name}")
        if session.discarded is not None:
            logger.debug(f"Challenge {session.discarded.status.name.lower()}")
        if self._on_change:
            self._on_change(session)
