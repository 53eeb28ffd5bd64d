"""Server protocol version gate."""

import json
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union

import aiohttp

from nfpair.address import join_url

logger = logging.getLogger(__name__)


class VersionCheckStatus(Enum):
    """How a version probe ended."""

    MATCH = auto()
    MISMATCH = auto()
    MALFORMED = auto()  # 200 but body unusable
    UNREACHABLE = auto()  # network error, timeout or non-200


@dataclass(frozen=True)
class VersionCheck:
    """Result of one version probe.

    Attributes:
        status: Probe outcome.
        required_version: Version this client needs.
        reported_version: Version the server sent ("" if none).
    """

    status: VersionCheckStatus
    required_version: str
    reported_version: str = ""

    @property
    def matches(self) -> bool:
        return self.status is VersionCheckStatus.MATCH


def extract_version(body: Union[bytes, str]) -> Optional[str]:
    """Pull the ``version`` field out of a response body.

    Args:
        body: Raw response body. Bytes are decoded as UTF-8.

    Returns:
        The version, or None if the body is not UTF-8, not a JSON object,
        or has no string ``version`` field.
    """
    try:
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        data = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    version = data.get("version")
    return version if isinstance(version, str) else None


class VersionProbe:
    """Checks that a server speaks the protocol version this client needs.

    Mirrors the publisher lifecycle: pass an aiohttp session in, or use
    the probe as an async context manager to have it own one.
    """

    VERSION_PATH = "/api/version"

    # Timeouts (in seconds)
    CONNECT_TIMEOUT = 5.0
    READ_TIMEOUT = 5.0

    def __init__(
        self,
        required_version: str,
        http_session: Optional[aiohttp.ClientSession] = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
    ):
        """Initialize probe.

        Args:
            required_version: Exact version string the server must report.
            http_session: Optional aiohttp session (for testing).
            connect_timeout: Connection timeout in seconds.
            read_timeout: Socket read timeout in seconds.
        """
        self._required_version = required_version
        self._session = http_session
        self._owns_session = http_session is None
        self._timeout = aiohttp.ClientTimeout(
            sock_connect=connect_timeout, sock_read=read_timeout
        )

    async def __aenter__(self):
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *args):
        await self.close()

    @property
    def required_version(self) -> str:
        """The version string servers must report."""
        return self._required_version

    async def probe(self, base_url: str) -> VersionCheck:
        """Query ``{base_url}/api/version``.

        Never raises for network or parse failures; those are reported
        through the returned status.

        Raises:
            RuntimeError: If no HTTP session is available.
        """
        if self._session is None:
            raise RuntimeError("Probe not initialized - use async context manager")

        url = join_url(base_url, self.VERSION_PATH)
        try:
            async with self._session.get(url, timeout=self._timeout) as resp:
                if resp.status != 200:
                    logger.warning(f"Version check returned {resp.status}")
                    return self._result(VersionCheckStatus.UNREACHABLE)
                body = await resp.read()
        except Exception as e:
            logger.warning(f"Version check failed for {base_url}: {e!r}")
            return self._result(VersionCheckStatus.UNREACHABLE)

        reported = extract_version(body)
        if reported is None:
            logger.warning("Version response has no usable version field")
            return self._result(VersionCheckStatus.MALFORMED)

        if reported == self._required_version:
            logger.debug(f"Server version {reported} accepted")
            return self._result(VersionCheckStatus.MATCH, reported)

        logger.info(
            f"Server version {reported!r} does not match "
            f"required {self._required_version!r}"
        )
        return self._result(VersionCheckStatus.MISMATCH, reported)

    async def check_version(self, base_url: str) -> bool:
        """True iff the server reports exactly the required version."""
        return (await self.probe(base_url)).matches

    def _result(self, status: VersionCheckStatus, reported: str = "") -> VersionCheck:
        return VersionCheck(
            status=status,
            required_version=self._required_version,
            reported_version=reported,
        )

    async def close(self) -> None:
        """Close the HTTP session if owned."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None
