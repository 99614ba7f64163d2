"""
Input Validation Utilities
===========================

Common validation functions for coordinates, place names and the
identifiers we splice into backend URLs.

Author: ResQlink Team
"""

import re


def validate_latitude(lat: float) -> bool:
    """
    Validate a latitude.

    Args:
        lat: Latitude in decimal degrees

    Returns:
        True if within -90..90, False otherwise
    """
    return -90.0 <= lat <= 90.0


def validate_longitude(lon: float) -> bool:
    """
    Validate a longitude.

    Args:
        lon: Longitude in decimal degrees

    Returns:
        True if within -180..180, False otherwise
    """
    return -180.0 <= lon <= 180.0


def validate_coordinates(lat: float, lon: float) -> bool:
    """Validate a lat/lon pair."""
    return validate_latitude(lat) and validate_longitude(lon)


def validate_place_name(name: str) -> bool:
    """
    Validate a place name for the weather lookup.

    Letters (any script), digits, spaces and the punctuation that shows
    up in real place names ("St. John's", "Rio de Janeiro, BR").

    Args:
        name: Place name as typed by the user

    Returns:
        True if valid, False otherwise
    """
    if not name or not name.strip():
        return False
    if len(name) > 100:
        return False
    return bool(re.match(r"^[\w\s.,'()-]+$", name, re.UNICODE))


def validate_table_name(table: str) -> bool:
    """
    Validate a database table name (plain SQL identifier).

    We put table names straight into the REST path, so keep them boring.
    """
    if not table:
        return False
    return bool(re.match(r'^[a-zA-Z_][a-zA-Z0-9_]{0,62}$', table))


def validate_channel_name(channel: str) -> bool:
    """
    Validate a realtime channel name (e.g. "sensor_updates", "messages-channel").
    """
    if not channel:
        return False
    return bool(re.match(r'^[a-zA-Z0-9_-]{1,100}$', channel))
