"""
Application Number Generation

Application numbers look like MHS2026-4821: an institutional prefix, the
calendar year of submission and a random four-digit suffix. Uniqueness is
not guaranteed here; the unique constraint on application_number catches
collisions and intake retries with a fresh number.
"""

import secrets
from datetime import UTC, datetime

from admissions_api.core.config import settings

SUFFIX_MIN = 1000
SUFFIX_MAX = 9999


def generate_application_number(now: datetime | None = None, prefix: str | None = None) -> str:
    """
    Generate a candidate application number.

    Args:
        now: Clock reading to take the year from (defaults to the current UTC time)
        prefix: Institutional prefix (defaults to settings.application_number_prefix)

    Returns:
        A candidate number such as "MHS2026-4821"
    """
    now = now or datetime.now(UTC)
    prefix = settings.application_number_prefix if prefix is None else prefix
    suffix = SUFFIX_MIN + secrets.randbelow(SUFFIX_MAX - SUFFIX_MIN + 1)
    return f"{prefix}{now.year}-{suffix}"
