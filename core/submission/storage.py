"""
Evidence Storage - Photo Storage for Collection Submissions

Stores uploaded evidence images on local disk and hands back an opaque
reference (``/uploads/<name>``) that the submission keeps. The lifecycle
never inspects file bytes, only the reference.
"""

from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path
from typing import Final, Optional

from core.errors import ValidationError


logger = logging.getLogger(__name__)


# =============================================================================
# Storage Configuration
# =============================================================================

DEFAULT_UPLOAD_DIR: Final[str] = "uploads"

# Public URL prefix the web layer serves the upload directory under
REFERENCE_PREFIX: Final[str] = "/uploads/"

ALLOWED_EXTENSIONS: Final[tuple[str, ...]] = (
    ".jpg",
    ".jpeg",
    ".png",
    ".webp",
    ".heic",
)

# Maximum file size (10MB)
MAX_FILE_SIZE_BYTES: Final[int] = 10 * 1024 * 1024


# =============================================================================
# Evidence Storage
# =============================================================================


class EvidenceStorage:
    """
    Local evidence storage.

    Files land flat in the upload directory under a unique generated
    name; the original filename only contributes its extension.
    """

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        max_file_size: int = MAX_FILE_SIZE_BYTES,
    ):
        """
        Initialise evidence storage.

        Args:
            upload_dir: Directory for stored files. Defaults to ./uploads.
            max_file_size: Largest accepted file in bytes
        """
        self._upload_dir = Path(upload_dir or DEFAULT_UPLOAD_DIR)
        self._max_file_size = max_file_size
        self._upload_dir.mkdir(parents=True, exist_ok=True)

    @property
    def upload_dir(self) -> Path:
        return self._upload_dir

    @staticmethod
    def _extension(filename: str) -> str:
        if "." not in (filename or ""):
            return ""
        return "." + filename.rsplit(".", 1)[-1].lower()

    def validate_file(self, filename: str, file_size: int) -> tuple[bool, Optional[str]]:
        """
        Validate file before storing.

        Returns:
            Tuple of (is_valid, error_message)
        """
        ext = self._extension(filename)
        if ext not in ALLOWED_EXTENSIONS:
            return False, f"Invalid image type: {ext or 'none'}. Allowed: {', '.join(ALLOWED_EXTENSIONS)}"

        if file_size > self._max_file_size:
            max_mb = self._max_file_size / (1024 * 1024)
            return False, f"Image too large. Maximum size: {max_mb:g}MB"

        if file_size == 0:
            return False, "Image is empty"

        return True, None

    def store(self, filename: str, content: bytes) -> str:
        """
        Store an evidence image.

        Args:
            filename: Original filename (extension is kept)
            content: File content

        Returns:
            Reference string for the stored file

        Raises:
            ValidationError: If the file is rejected
        """
        is_valid, error = self.validate_file(filename, len(content))
        if not is_valid:
            raise ValidationError(error)

        name = f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{self._extension(filename)}"
        (self._upload_dir / name).write_bytes(content)
        logger.debug("Stored evidence %s (%d bytes)", name, len(content))
        return REFERENCE_PREFIX + name

    def path_for(self, reference: str) -> Optional[Path]:
        """Resolve a reference to a file path inside the upload directory."""
        if not reference or not reference.startswith(REFERENCE_PREFIX):
            return None
        name = reference[len(REFERENCE_PREFIX):]
        if not name or "/" in name or "\\" in name or name.startswith("."):
            return None
        return self._upload_dir / name

    def delete(self, reference: str) -> bool:
        """
        Delete a stored file.

        Returns:
            True if deleted, False if not found
        """
        path = self.path_for(reference)
        if path is not None and path.exists():
            path.unlink()
            return True
        return False
