"""HTTP calls made against the notification server during pairing.

- Version gate (GET /api/version)
- Code delivery (POST /api/notify)
"""

from .challenge_dispatcher import ChallengeDispatcher
from .version_probe import VersionCheck, VersionCheckStatus, VersionProbe

__all__ = [
    "ChallengeDispatcher",
    "VersionCheck",
    "VersionCheckStatus",
    "VersionProbe",
]
