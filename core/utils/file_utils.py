"""File handling utilities"""

import io
import logging
import re
import time
from pathlib import Path
from typing import Dict, Optional

from PIL import Image

logger = logging.getLogger(__name__)

# Characters allowed in stored filenames; everything else becomes "_"
UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


def get_safe_filename(filename: str) -> str:
    """Replace every character outside [A-Za-z0-9_.-] with an underscore"""
    return UNSAFE_FILENAME_CHARS.sub("_", filename)


def generate_filename(original_filename: str, timestamp_ms: Optional[int] = None) -> str:
    """Generate a collision-resistant filename: <epoch-ms>_<sanitized-original>"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{timestamp_ms}_{get_safe_filename(original_filename)}"


def content_type_matches(content_type: Optional[str], token: str) -> bool:
    """Check a declared MIME type, e.g. "image/png" contains "png" """
    if not content_type:
        return False
    return token.lower() in content_type.lower()


def validate_image_bytes(data: bytes, expected_format: Optional[str] = "PNG") -> Dict:
    """Validate and get info about in-memory image data"""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            format_name = img.format
            width, height = img.size
            mode = img.mode

        if expected_format and format_name != expected_format:
            return {
                "valid": False,
                "error": f"Expected {expected_format} image, got {format_name}",
            }

        return {
            "valid": True,
            "width": width,
            "height": height,
            "format": format_name,
            "mode": mode,
        }
    except Exception as e:
        return {"valid": False, "error": str(e) or "Unreadable image data"}


def ensure_directory(directory: str) -> None:
    """Ensure directory exists, create if it doesn't"""
    Path(directory).mkdir(parents=True, exist_ok=True)
