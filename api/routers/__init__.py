"""Router module initialization"""

from . import skins

__all__ = ["skins"]
