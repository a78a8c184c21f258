"""
Models Package
==============

Import from here instead of the individual files.

Example:
    from airgradient_bridge.models import Reading, MeasurePayload
"""

from .reading import (
    NULL_INSTANCE_ID,
    MeasurePayload,
    Reading,
)

__all__ = [
    "NULL_INSTANCE_ID",
    "MeasurePayload",
    "Reading",
]
