"""On-disk storage for uploaded skin textures"""

import logging
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from core.utils.file_utils import ensure_directory, generate_filename

logger = logging.getLogger(__name__)


class SkinFileStorage:
    """
    Stores skin files as ``<upload_dir>/<epoch-ms>_<sanitized-name>`` and
    exposes them under ``<public_prefix>/<filename>``.
    """

    def __init__(self, upload_dir: str = "uploads", public_prefix: str = "/uploads"):
        self.upload_dir = Path(upload_dir)
        self.public_prefix = "/" + public_prefix.strip("/")
        ensure_directory(str(self.upload_dir))

    def build_filename(self, original_filename: str, timestamp_ms: Optional[int] = None) -> str:
        return generate_filename(original_filename, timestamp_ms)

    def path_for(self, filename: str) -> Path:
        return self.upload_dir / filename

    def public_url(self, filename: str) -> str:
        return f"{self.public_prefix}/{filename}"

    async def save(self, filename: str, data: bytes) -> Path:
        """Write the whole payload in one go and return the file path"""
        file_path = self.path_for(filename)
        async with aiofiles.open(file_path, "wb") as f:
            await f.write(data)

        logger.info(f"Saved skin file: {file_path} ({len(data)} bytes)")
        return file_path

    async def delete(self, filename: str) -> None:
        """Remove a stored file; missing files are ignored"""
        file_path = self.path_for(filename)
        if await aiofiles.os.path.exists(file_path):
            await aiofiles.os.remove(file_path)
            logger.info(f"Deleted skin file: {file_path}")
