"""One-time confirmation codes.

Codes only prove that the user can read the server's screen for the
duration of one attempt, so the non-cryptographic ``random`` module is
enough here.
"""

import random
from typing import Optional

CODE_LENGTH = 6
DIGITS = "0123456789"


def generate_code(rng: Optional[random.Random] = None) -> str:
    """Generate a 6-digit code, leading zeros allowed.

    Args:
        rng: Random source, for deterministic tests. Defaults to the
            module-level generator.

    Returns:
        String of exactly CODE_LENGTH decimal digits.
    """
    source = rng or random
    return "".join(source.choice(DIGITS) for _ in range(CODE_LENGTH))


def _is_digits(value: str) -> bool:
    # str.isdigit() also accepts superscripts and other Unicode digits
    return all(char in DIGITS for char in value)


def accept_code_input(current: str, proposed: str) -> str:
    """Filter an edit to the code entry field.

    The edit is taken only while the field stays numeric and at most
    CODE_LENGTH long; otherwise the field keeps its current value.
    """
    if len(proposed) <= CODE_LENGTH and _is_digits(proposed):
        return proposed
    return current


def is_complete_code(value: str) -> bool:
    """True when value can be submitted (exactly CODE_LENGTH digits)."""
    return len(value) == CODE_LENGTH and _is_digits(value)
