"""Server address canonicalization."""

SCHEME_PREFIXES = ("http://", "https://")
DEFAULT_SCHEME = "http://"


def normalize_address(raw: str) -> str:
    """Turn a user-entered host into a scheme-qualified base URL.

    Addresses that already start with ``http://`` or ``https://`` (exact,
    case-sensitive) are returned unchanged; anything else gets ``http://``
    prepended. The hostname itself is not validated.

    Examples:
        >>> normalize_address("192.168.1.5:5000")
        'http://192.168.1.5:5000'
        >>> normalize_address("https://notify.local")
        'https://notify.local'
    """
    if raw.startswith(SCHEME_PREFIXES):
        return raw
    return f"{DEFAULT_SCHEME}{raw}"


def join_url(base_url: str, path: str) -> str:
    """Append an API path to a base URL."""
    return f"{base_url}{path}"
