"""
Skin API endpoints.

- GET  /api/skin/{username}     Mojang skin lookup
- POST /api/upload-skin         PNG skin upload (multipart: file, name, author)
- GET  /api/uploaded-skins      catalog listing, oldest first
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import get_catalog, get_current_settings, get_intake, get_resolver
from core.identity import SkinResolver
from core.skins import SkinCatalog, SkinIntake, SkinRecord
from core.utils.exceptions import (
    IdentityProviderError,
    ProfileNotFoundError,
    SkinLookupError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["skins"])


class SkinLookupResponse(BaseModel):
    """Response for username skin lookups"""

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., description="Username as requested")
    uuid: str = Field(..., description="Mojang profile id")
    skin_url: str = Field(..., alias="skinUrl", description="Current skin texture URL")


class SkinRecordResponse(BaseModel):
    """A cataloged skin upload"""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="Sequential record id, starting at 1")
    name: str = Field(..., description="Display name")
    author: str = Field(..., description="Author name")
    filename: str = Field(..., description="Stored filename")
    url: str = Field(..., description="Public path of the stored file")
    uploaded_at: str = Field(..., alias="uploadedAt", description="Upload timestamp (UTC)")

    @classmethod
    def from_record(cls, record: SkinRecord) -> "SkinRecordResponse":
        return cls(**record.to_dict())


class UploadSkinResponse(BaseModel):
    """Response for skin uploads"""

    success: bool = True
    skin: SkinRecordResponse


@router.get("/skin/{username}", response_model=SkinLookupResponse)
async def get_skin(
    username: str,
    resolver: SkinResolver = Depends(get_resolver),
    settings=Depends(get_current_settings),
):
    """
    Look up the current skin of a Minecraft username.

    Unknown usernames and identity provider failures both answer 404 unless
    ``identity.report_provider_errors`` is enabled, in which case provider
    failures answer 502.
    """
    skin, error = await run_in_threadpool(resolver.resolve, username)

    if error:
        if isinstance(error, IdentityProviderError) and settings.identity.report_provider_errors:
            raise IdentityProviderError("Mojang API error", status_code=502)
        if isinstance(error, (ProfileNotFoundError, IdentityProviderError)):
            raise SkinLookupError()
        raise error

    return SkinLookupResponse(**skin.to_dict())


@router.post("/upload-skin", response_model=UploadSkinResponse)
async def upload_skin(
    file: Optional[UploadFile] = File(None, description="PNG skin file"),
    name: Optional[str] = Form(None, description="Display name"),
    author: Optional[str] = Form(None, description="Author name"),
    intake: SkinIntake = Depends(get_intake),
):
    """
    Upload a PNG skin.

    Files that are not PNG or exceed the size ceiling are rejected before
    anything is stored.
    """
    record = await intake.accept(file, name=name, author=author)
    return UploadSkinResponse(skin=SkinRecordResponse.from_record(record))


@router.get("/upload-skin/limits")
async def get_upload_limits(settings=Depends(get_current_settings)):
    """Get the accepted content type and size ceiling for uploads"""
    upload = settings.upload
    return {
        "content_type": f"image/{upload.content_type_token}",
        "max_size_bytes": upload.max_size_bytes,
        "public_prefix": upload.public_prefix,
        "verify_image": upload.verify_image,
    }


@router.get("/uploaded-skins", response_model=List[SkinRecordResponse])
async def list_uploaded_skins(catalog: SkinCatalog = Depends(get_catalog)):
    """List uploaded skins, oldest first"""
    records = await catalog.list()
    return [SkinRecordResponse.from_record(record) for record in records]
