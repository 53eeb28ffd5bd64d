"""Delivers the confirmation code to the server as a notification."""

import json
import logging
from typing import Optional

import aiohttp

from nfpair.address import join_url
from nfpair.config import DEFAULT_APP_NAME

logger = logging.getLogger(__name__)


class ChallengeDispatcher:
    """Posts the pairing code to the server's notify endpoint.

    The server shows the payload as a notification; that notification is
    the only place the user can read the code from.
    """

    NOTIFY_PATH = "/api/notify"

    TITLE = "Connection request from a new device"
    DESCRIPTION_TEMPLATE = "Enter this verification code on your phone: {code}"

    # Timeouts (in seconds)
    CONNECT_TIMEOUT = 5.0
    READ_TIMEOUT = 5.0

    def __init__(
        self,
        device_name: str,
        app_name: str = DEFAULT_APP_NAME,
        http_session: Optional[aiohttp.ClientSession] = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
    ):
        """Initialize dispatcher.

        Args:
            device_name: Model identifier of this device.
            app_name: Application name shown with the notification.
            http_session: Optional aiohttp session (for testing).
            connect_timeout: Connection timeout in seconds.
            read_timeout: Socket read timeout in seconds.
        """
        self._device_name = device_name
        self._app_name = app_name
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
    def device_name(self) -> str:
        return self._device_name

    @property
    def app_name(self) -> str:
        return self._app_name

    def build_payload(self, code: str) -> dict[str, str]:
        """Build the notify request body for a code."""
        return {
            "devicename": self._device_name,
            "appname": self._app_name,
            "title": self.TITLE,
            "description": self.DESCRIPTION_TEMPLATE.format(code=code),
        }

    async def dispatch(self, base_url: str, code: str) -> bool:
        """Send the code to ``{base_url}/api/notify``.

        Returns:
            True iff the server answered 200. Network errors and timeouts
            return False.

        Raises:
            RuntimeError: If no HTTP session is available.
        """
        if self._session is None:
            raise RuntimeError(
                "Dispatcher not initialized - use async context manager"
            )

        url = join_url(base_url, self.NOTIFY_PATH)
        body = json.dumps(self.build_payload(code), ensure_ascii=False)

        try:
            async with self._session.post(
                url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            ) as resp:
                if resp.status == 200:
                    logger.info("Confirmation code delivered")
                    return True
                text = await resp.text()
                logger.warning(f"Notify returned {resp.status}: {text[:100]}")
                return False
        except Exception as e:
            logger.warning(f"Notify failed for {base_url}: {e!r}")
            return False

    async def close(self) -> None:
        """Close the HTTP session if owned."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None
