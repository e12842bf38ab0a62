"""Skin upload intake and catalog module"""

from .catalog import InMemorySkinCatalog, RedisSkinCatalog, SkinCatalog, create_catalog
from .intake import SkinIntake
from .models import DEFAULT_AUTHOR, ResolvedSkin, SkinRecord
from .storage import SkinFileStorage

__all__ = [
    "DEFAULT_AUTHOR",
    "InMemorySkinCatalog",
    "RedisSkinCatalog",
    "ResolvedSkin",
    "SkinCatalog",
    "SkinFileStorage",
    "SkinIntake",
    "SkinRecord",
    "create_catalog",
]
