"""Staging and validation of uploaded text files."""

from __future__ import annotations

import logging
import mimetypes
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from pydantic import Field

from .constants import (
    ALLOWED_UPLOAD_CONTENT_TYPES,
    ALLOWED_UPLOAD_EXTENSIONS,
    MAX_UPLOAD_BYTES,
)
from .contracts import Document
from .errors import UploadRejectedError

logger = logging.getLogger(__name__)


class UploadedFile(Document):
    """A file received from a caller and staged on local disk.

    ``path`` is a temporary copy owned by the execution; the input node
    deletes it once read.
    """

    path: Path
    original_name: str
    content_type: Optional[str] = None
    size: int = Field(default=0, ge=0)


def validate_upload(
    upload: UploadedFile,
    max_bytes: int = MAX_UPLOAD_BYTES,
    allowed_extensions: Sequence[str] = ALLOWED_UPLOAD_EXTENSIONS,
) -> None:
    """Reject uploads that are too large or not plain text.

    A file is accepted when its content type is ``text/plain`` or its name
    has an allowed extension.
    """
    if upload.size > max_bytes:
        raise UploadRejectedError(
            f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."
        )
    extension = Path(upload.original_name).suffix.lower()
    allowed = {ext.lower() for ext in allowed_extensions}
    if upload.content_type not in ALLOWED_UPLOAD_CONTENT_TYPES and extension not in allowed:
        raise UploadRejectedError("Only .txt files are allowed")


def stage_upload(
    source: Path,
    upload_dir: str | Path,
    max_bytes: int = MAX_UPLOAD_BYTES,
    allowed_extensions: Sequence[str] = ALLOWED_UPLOAD_EXTENSIONS,
) -> UploadedFile:
    """Validate ``source`` and copy it into ``upload_dir`` as a temporary file."""
    source = Path(source)
    if not source.is_file():
        raise UploadRejectedError(f"File not found: {source}")

    content_type, _ = mimetypes.guess_type(source.name)
    upload = UploadedFile(
        path=source,
        original_name=source.name,
        content_type=content_type,
        size=source.stat().st_size,
    )
    validate_upload(upload, max_bytes=max_bytes, allowed_extensions=allowed_extensions)

    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(dir=directory, delete=False) as target:
        with source.open("rb") as src:
            shutil.copyfileobj(src, target)
    upload.path = Path(target.name)
    logger.debug(f"Staged upload {source.name} at {upload.path}")
    return upload
