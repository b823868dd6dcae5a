from __future__ import annotations

import pytest

from nsv_ingest.models.config_models import UploadLimits
from nsv_ingest.services.upload import (
    UnsupportedExtensionError,
    UploadRejectedError,
    UploadTooLargeError,
    validate_upload,
)

LIMITS = UploadLimits()


@pytest.mark.parametrize("name", ["survey.xlsx", "SURVEY.XLSX", "legacy.xls"])
def test_accepted_uploads(name):
    validate_upload(name, 1024, LIMITS)


def test_wrong_extension_message():
    with pytest.raises(UnsupportedExtensionError) as exc:
        validate_upload("survey.csv", 10, LIMITS)
    assert str(exc.value) == "Only Excel files (.xlsx, .xls) are allowed. Received: .csv"


def test_missing_extension():
    with pytest.raises(UnsupportedExtensionError, match=r"Received: \(no extension\)"):
        validate_upload("survey", 10, LIMITS)


def test_oversize_upload_is_distinct_from_wrong_type():
    size = 12 * 1024 * 1024
    with pytest.raises(UploadTooLargeError) as exc:
        validate_upload("survey.xlsx", size, LIMITS)
    assert str(exc.value).startswith("File too large: 12MB exceeds the 10MB limit.")
    assert isinstance(exc.value, UploadRejectedError)


def test_exact_limit_is_accepted():
    validate_upload("survey.xlsx", LIMITS.max_bytes, LIMITS)


def test_custom_limits():
    limits = UploadLimits(max_bytes=1536 * 1024, allowed_extensions=(".xlsx",))
    with pytest.raises(UnsupportedExtensionError):
        validate_upload("legacy.xls", 10, limits)
    with pytest.raises(UploadTooLargeError, match="exceeds the 1.5MB limit"):
        validate_upload("survey.xlsx", 2 * 1024 * 1024, limits)
