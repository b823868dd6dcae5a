from __future__ import annotations

from pathlib import PurePath

from ..models.config_models import UploadLimits

"""Upload boundary checks, run before any decoding.

The file extension is the authoritative type gate (MIME sniffing of spreadsheet
uploads is unreliable). Wrong extension and oversize input get distinct,
user-actionable messages.
"""

__all__ = [
    "UnsupportedExtensionError",
    "UploadRejectedError",
    "UploadTooLargeError",
    "validate_upload",
]


class UploadRejectedError(Exception):
    """Base class for uploads rejected before decoding."""


class UnsupportedExtensionError(UploadRejectedError):
    pass


class UploadTooLargeError(UploadRejectedError):
    pass


def _format_mb(n_bytes: int) -> str:
    mb = n_bytes / (1024 * 1024)
    return f"{mb:.0f}MB" if mb == int(mb) else f"{mb:.1f}MB"


def validate_upload(file_name: str, size_bytes: int, limits: UploadLimits) -> None:
    """Raise an UploadRejectedError subclass when the upload is not acceptable."""
    suffix = PurePath(file_name).suffix.lower()
    if suffix not in limits.allowed_extensions:
        allowed = ", ".join(limits.allowed_extensions)
        received = suffix or "(no extension)"
        raise UnsupportedExtensionError(
            f"Only Excel files ({allowed}) are allowed. Received: {received}"
        )
    if size_bytes > limits.max_bytes:
        raise UploadTooLargeError(
            f"File too large: {_format_mb(size_bytes)} exceeds the "
            f"{_format_mb(limits.max_bytes)} limit. Split the survey workbook and upload the parts."
        )
