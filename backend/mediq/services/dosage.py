"""
Dose string helpers used by the medication forms.
Splits strings like "10mg" or "5.5ml" into value and unit and builds them back.
"""
import math
import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_UNIT = "mg"

_DOSE_WITH_UNIT = re.compile(r"^([\d.]+)([a-zA-Z]+)$")
_LEADING_NUMBER = re.compile(r"^([\d.]+)")


@dataclass
class ParsedDose:
    value: str
    unit: str = DEFAULT_UNIT


def parse_dose(dose: Optional[str]) -> ParsedDose:
    """Split a dose string into value and unit.

    A bare number is assumed to be in milligrams; anything that does not start
    with a number parses to an empty value.
    """
    if not dose:
        return ParsedDose(value="")

    match = _DOSE_WITH_UNIT.match(dose)
    if match:
        return ParsedDose(value=match.group(1), unit=match.group(2))

    match = _LEADING_NUMBER.match(dose)
    if match:
        return ParsedDose(value=match.group(1))

    return ParsedDose(value="")


def format_dose(value: str, unit: str) -> str:
    if not value or not unit:
        return ""
    return f"{value}{unit}"


def sanitize_dose_value(raw: str) -> str:
    """Keep only digits and decimal points, as the dose input field does."""
    return re.sub(r"[^0-9.]", "", raw or "")


def validate_dose_value(value: str) -> Optional[str]:
    """Return an error message for an invalid dose value, or None."""
    if not value or not value.strip():
        return "Dose value is required"
    try:
        number = float(value)
    except ValueError:
        return "Dose must be a valid positive number"
    if not math.isfinite(number) or number <= 0:
        return "Dose must be a valid positive number"
    return None
