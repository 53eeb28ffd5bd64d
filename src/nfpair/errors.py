"""Base exceptions for nfpair."""


class NfpairError(Exception):
    """Base exception for all nfpair errors."""

    pass


class PairingError(NfpairError):
    """Pairing manager misuse."""

    pass


class PairingBusyError(PairingError):
    """A network call for the current attempt is still in flight."""

    pass


class StorageError(NfpairError):
    """Address store operation error."""

    pass
