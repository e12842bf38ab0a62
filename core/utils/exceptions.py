"""API exception hierarchy.

Every failure a request can hit is a ``BaseAPIException`` subclass carrying a
human-readable message, a stable error code and the HTTP status it maps to.
The app-level exception handler in ``api.main`` renders them as
``{"error": message, "code": error_code}``.
"""

from typing import Optional


class BaseAPIException(Exception):
    """Base class for errors reported to API callers"""

    default_message = "Request failed"
    default_error_code = "API_ERROR"
    default_status_code = 400

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.status_code = status_code or self.default_status_code
        super().__init__(self.message)


# Skin lookup errors


class SkinLookupError(BaseAPIException):
    """Raised when a username cannot be resolved to a skin texture"""

    default_message = "Username not found or Mojang API error"
    default_error_code = "LOOKUP_FAILED"
    default_status_code = 404


class ProfileNotFoundError(SkinLookupError):
    """The identity provider has no profile for the requested name"""

    default_error_code = "LOOKUP_NOT_FOUND"


class IdentityProviderError(SkinLookupError):
    """Transport failure or malformed answer from the identity provider"""

    default_error_code = "PROVIDER_ERROR"


class NoTexturesError(SkinLookupError):
    default_message = "No textures found for this user"
    default_error_code = "NO_TEXTURES"


class NoSkinUrlError(SkinLookupError):
    default_message = "No skin found for this user"
    default_error_code = "NO_SKIN"


# Upload errors


class FileUploadError(BaseAPIException):
    """Raised when an uploaded skin file is rejected"""

    default_message = "File upload rejected"
    default_error_code = "UPLOAD_REJECTED"

    def __init__(self, filename: Optional[str] = None, message: Optional[str] = None, **kwargs):
        self.filename = filename
        super().__init__(message, **kwargs)


class NoFileProvidedError(FileUploadError):
    default_message = "No file uploaded"
    default_error_code = "NO_FILE"


class FileTypeRejectedError(FileUploadError):
    default_message = "Only PNG files allowed"
    default_error_code = "FILE_TYPE_REJECTED"


class FileTooLargeError(FileUploadError):
    default_message = "File too large"
    default_error_code = "FILE_TOO_LARGE"
    default_status_code = 413
