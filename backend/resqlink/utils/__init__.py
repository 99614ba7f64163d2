"""
Utility modules for the ResQlink dashboard backend.
"""

from resqlink.utils.validation import (
    validate_latitude,
    validate_longitude,
    validate_coordinates,
    validate_place_name,
    validate_table_name,
    validate_channel_name,
)

__all__ = [
    "validate_latitude",
    "validate_longitude",
    "validate_coordinates",
    "validate_place_name",
    "validate_table_name",
    "validate_channel_name",
]
