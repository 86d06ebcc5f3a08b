"""
Admissions Shared Helpers

Small functions used by intake, lookup, scoring and the status machine.
"""

import re
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

_NON_DIGITS = re.compile(r"\D")

# Mobile numbers are compared on their last 10 digits (national number
# without the country code)
MOBILE_KEY_LENGTH = 10


def normalize_mobile(mobile: str | None) -> str:
    """
    Reduce a phone number to the key used for comparison.

    Strips every non-digit and keeps the last 10 digits, so that
    "+91 96454-99929" and "9645499929" compare equal.
    """
    if not mobile:
        return ""
    digits = _NON_DIGITS.sub("", mobile)
    return digits[-MOBILE_KEY_LENGTH:]


def mask_mobile(mobile: str | None) -> str:
    """Mask a phone number for logs, keeping only the last 4 digits."""
    digits = normalize_mobile(mobile)
    if len(digits) <= 4:
        return "****"
    return f"{'*' * (len(digits) - 4)}{digits[-4:]}"


def round_half_up(value: Decimal | float | int) -> int:
    """Round to the nearest integer with halves rounded away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> int:
    """Whole-number percentage of part over whole; 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(Decimal(part) * 100 / Decimal(whole))


def get_effective_full_name(row: Mapping[str, Any]) -> str | None:
    """
    Get the applicant's name from a raw application row.

    Legacy early-years tables store the name in child_name rather than
    full_name.
    """
    return row.get("full_name") or row.get("child_name")


def row_to_application_dict(row: Mapping[str, Any]) -> dict[str, Any]:
    """
    Turn a raw application row into the applicant-facing record.

    Null columns are dropped, child_name is reported as full_name and
    date/time/UUID values are left for the response serializer.
    """
    application = {key: value for key, value in row.items() if value is not None}
    if "full_name" not in application:
        name = get_effective_full_name(row)
        if name is not None:
            application["full_name"] = name
    application.pop("child_name", None)
    return application


def model_to_application_dict(application: Any) -> dict[str, Any]:
    """Turn an ORM application into the applicant-facing record."""
    row = {
        column.key: getattr(application, column.key)
        for column in application.__table__.columns
    }
    return row_to_application_dict(row)
