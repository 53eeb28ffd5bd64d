"""Persist the confirmed server address to a JSON file."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from nfpair.address import normalize_address
from nfpair.errors import StorageError

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class StoredServer:
    """The server this device forwards notifications to."""

    address: str
    saved_at: str  # ISO format

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"server_address": self.address, "saved_at": self.saved_at}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "StoredServer":
        """Create from dictionary."""
        address = d["server_address"]
        if not isinstance(address, str):
            raise TypeError("server_address must be a string")
        return cls(address=address, saved_at=d.get("saved_at", ""))


class JsonAddressStore:
    """JSON file-based storage for the confirmed server address."""

    def __init__(self, path: Path):
        """Initialize address store.

        Args:
            path: Path to JSON file for persistence.
        """
        self.path = path
        self._server: Optional[StoredServer] = None

    async def load(self) -> None:
        """Load the stored address from file."""
        self._server = None
        if not self.path.exists():
            logger.debug(f"No server file at {self.path}")
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            self._server = StoredServer.from_dict(data)
            logger.debug(f"Loaded server address {self._server.address}")
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse server file: {e}")
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring malformed server file: {e}")
        except Exception as e:
            logger.error(f"Failed to load server file: {e}")

    async def save(self) -> None:
        """Write the current address to file.

        Raises:
            StorageError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if self._server is None:
                self.path.unlink(missing_ok=True)
                return
            with open(self.path, "w") as f:
                json.dump(self._server.to_dict(), f, indent=2)
        except OSError as e:
            raise StorageError(f"Failed to save server address: {e}") from e

        logger.debug(f"Saved server address to {self.path}")

    async def save_server_address(self, address: str) -> None:
        """Store a confirmed server address.

        This method matches the AddressStore protocol expected by
        PairingManager.
        """
        self._server = StoredServer(
            address=normalize_address(address), saved_at=_utc_now()
        )
        await self.save()

    async def clear(self) -> bool:
        """Forget the stored address.

        Returns:
            True if an address was removed, False if none was stored.
        """
        if self._server is None:
            return False
        self._server = None
        await self.save()
        return True

    def get_server_address(self) -> Optional[str]:
        """The stored address, if any."""
        return self._server.address if self._server else None

    def get(self) -> Optional[StoredServer]:
        return self._server
