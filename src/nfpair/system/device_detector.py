"""Device model detection for different platforms."""

import platform
import socket
import subprocess
import sys
from pathlib import Path

DMI_PRODUCT_NAME = Path("/sys/class/dmi/id/product_name")

# Placeholder values firmware vendors leave in DMI fields
_UNSET_DMI_VALUES = {
    "",
    "to be filled by o.e.m.",
    "system product name",
    "default string",
    "none",
}


def get_device_model() -> str:
    """Get a human-readable model name for this machine.

    Sent to the server so the user can tell which device is asking to
    pair. Never raises; falls back to the short hostname.
    """
    model = None
    if sys.platform == "darwin":
        model = _detect_macos_model()
    elif sys.platform.startswith("linux"):
        model = _detect_linux_model()
    return model or get_hostname() or platform.machine() or "unknown"


def _detect_macos_model() -> str | None:
    """Read the hardware model on macOS using sysctl."""
    try:
        result = subprocess.run(
            ["sysctl", "-n", "hw.model"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    model = result.stdout.strip()
    return model if result.returncode == 0 and model else None


def _detect_linux_model(product_file: Path = DMI_PRODUCT_NAME) -> str | None:
    """Read the DMI product name on Linux."""
    try:
        model = product_file.read_text().strip()
    except OSError:
        return None
    if model.lower() in _UNSET_DMI_VALUES:
        return None
    return model


def get_hostname() -> str:
    """Get the short system hostname."""
    return socket.gethostname().split(".")[0]
