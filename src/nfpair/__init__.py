"""nfpair - pair this device with a NotifyForwarders server."""

__version__ = "0.1.0"
