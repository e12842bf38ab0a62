"""Mojang identity and skin texture resolution"""

from .resolver import (
    SkinResolver,
    extract_skin_url,
    fetch_profile_properties,
    lookup_profile_id,
)

__all__ = [
    "SkinResolver",
    "extract_skin_url",
    "fetch_profile_properties",
    "lookup_profile_id",
]
