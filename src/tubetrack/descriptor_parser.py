"""Parser for the free-text currentLocation field of TfL arrivals."""

import logging
import re
from typing import Optional

from .models import DescriptorKind, LocationDescriptor

logger = logging.getLogger(__name__)

AT_PLATFORM = "At Platform"

# Tried in order, first match wins. Keywords are case-sensitive.
_SINGLE_STATION_PATTERNS = [
    (DescriptorKind.AT, re.compile(r"At (.+)")),
    (DescriptorKind.APPROACHING, re.compile(r"Approaching (.+)")),
    (DescriptorKind.LEAVING, re.compile(r"Leaving (.+)")),
    (DescriptorKind.LEFT, re.compile(r"Left (.+)")),
    (DescriptorKind.DEPARTED, re.compile(r"Departed (.+)")),
]
_BETWEEN_PATTERN = re.compile(r"Between (.+) and (.+)")


def parse_location(text: Optional[str], fallback_station_name: Optional[str] = None) -> LocationDescriptor:
    """
    Parse a currentLocation string into a LocationDescriptor.

    Args:
        text: Free text from the feed (e.g., "Between Oxford Circus and Holborn")
        fallback_station_name: Station the prediction is for. Used for "At Platform",
            which names no station of its own.

    Returns:
        A LocationDescriptor. Text matching no known pattern gives an UNRECOGNIZED
        descriptor; this function never raises.
    """
    if not isinstance(text, str):
        logger.warning(f"Unrecognized location: {text!r} is not text")
        return LocationDescriptor(kind=DescriptorKind.UNRECOGNIZED, raw_text="" if text is None else str(text))

    if not text:
        logger.warning("Unrecognized location: empty currentLocation")
        return LocationDescriptor(kind=DescriptorKind.UNRECOGNIZED, raw_text=text)

    if not isinstance(fallback_station_name, str):
        fallback_station_name = None

    match = _BETWEEN_PATTERN.fullmatch(text)
    if match:
        return LocationDescriptor(
            kind=DescriptorKind.BETWEEN,
            raw_text=text,
            station=match.group(1),
            other_station=match.group(2),
        )

    if text == AT_PLATFORM:
        return LocationDescriptor(kind=DescriptorKind.AT_PLATFORM, raw_text=text, station=fallback_station_name)

    for kind, pattern in _SINGLE_STATION_PATTERNS:
        match = pattern.fullmatch(text)
        if match:
            return LocationDescriptor(kind=kind, raw_text=text, station=match.group(1))

    logger.warning(f"Unrecognized location: {text!r}")
    return LocationDescriptor(kind=DescriptorKind.UNRECOGNIZED, raw_text=text)
