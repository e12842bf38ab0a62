"""
Skin upload intake.

Validates an uploaded file, persists it and catalogs it. Every check runs
against the in-memory payload before anything is written, so a rejected
upload never leaves a file or a catalog record behind. A file whose catalog
append fails is removed again.
"""

import logging
from typing import Optional

from fastapi import UploadFile

from core.utils.exceptions import (
    FileTooLargeError,
    FileTypeRejectedError,
    NoFileProvidedError,
)
from core.utils.file_utils import content_type_matches, validate_image_bytes

from .catalog import SkinCatalog
from .models import SkinRecord
from .storage import SkinFileStorage

logger = logging.getLogger(__name__)


class SkinIntake:
    """Upload pipeline: validate, persist, catalog"""

    def __init__(
        self,
        storage: SkinFileStorage,
        catalog: SkinCatalog,
        max_size_bytes: int = 2 * 1024 * 1024,
        content_type_token: str = "png",
        verify_image: bool = True,
    ):
        self.storage = storage
        self.catalog = catalog
        self.max_size_bytes = max_size_bytes
        self.content_type_token = content_type_token
        self.verify_image = verify_image

    @classmethod
    def from_settings(cls, settings, catalog: SkinCatalog) -> "SkinIntake":
        upload = settings.upload
        storage = SkinFileStorage(upload.upload_dir, upload.public_prefix)
        return cls(
            storage,
            catalog,
            max_size_bytes=upload.max_size_bytes,
            content_type_token=upload.content_type_token,
            verify_image=upload.verify_image,
        )

    def check_content_type(self, filename: str, content_type: Optional[str]) -> None:
        if not content_type_matches(content_type, self.content_type_token):
            logger.warning(f"Rejected {filename}: content type {content_type!r}")
            raise FileTypeRejectedError(filename)

    async def read_limited(self, file: UploadFile) -> bytes:
        """Read the upload into memory, refusing anything over the size ceiling"""
        data = await file.read(self.max_size_bytes + 1)
        if len(data) > self.max_size_bytes:
            logger.warning(
                f"Rejected {file.filename}: exceeds {self.max_size_bytes} bytes"
            )
            raise FileTooLargeError(
                file.filename,
                f"File too large (max {self.max_size_bytes} bytes)",
            )
        return data

    def check_image(self, filename: str, data: bytes) -> None:
        info = validate_image_bytes(data, expected_format="PNG")
        if not info["valid"]:
            logger.warning(f"Rejected {filename}: {info['error']}")
            raise FileTypeRejectedError(filename, "File is not a valid PNG image")

    async def accept(
        self,
        file: Optional[UploadFile],
        name: Optional[str] = None,
        author: Optional[str] = None,
    ) -> SkinRecord:
        """
        Run the full intake pipeline for one upload.

        Args:
            file: The uploaded file part, or None when the form had no file
            name: Display name; defaults to the original filename
            author: Author name; defaults to "Anonymous"

        Returns:
            The newly cataloged record

        Raises:
            NoFileProvidedError, FileTypeRejectedError, FileTooLargeError
        """
        if file is None or not file.filename:
            raise NoFileProvidedError()

        original_filename = file.filename
        self.check_content_type(original_filename, file.content_type)
        data = await self.read_limited(file)
        if self.verify_image:
            self.check_image(original_filename, data)

        stored_filename = self.storage.build_filename(original_filename)
        await self.storage.save(stored_filename, data)

        try:
            record = await self.catalog.add(
                name=name or original_filename,
                author=author,
                filename=stored_filename,
                url=self.storage.public_url(stored_filename),
            )
        except Exception:
            logger.error(f"Cataloging {stored_filename} failed, removing stored file")
            await self.storage.delete(stored_filename)
            raise

        logger.info(
            f"Accepted skin upload {record.id}: {original_filename} -> {stored_filename}"
        )
        return record
