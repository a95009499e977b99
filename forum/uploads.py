"""
forum/uploads.py -- Local-disk file storage for post attachments.

The content repository never holds file bytes. It hands the payload to this
storage, gets back an Attachment carrying a locator (the URL path the file is
served from) and stores only that metadata.

Stored names are generated server-side: "files-<ms timestamp>-<random><ext>".
The client's file name is kept as original_name for display but never touches
the filesystem path, so "../../etc/passwd" style names cannot escape the
upload directory.
"""

import re
import secrets
import time
from pathlib import Path
from typing import Union

from core.errors import ValidationError
from forum.models import Attachment

_SAFE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


class LocalFileStorage:
    def __init__(self, root: Union[str, Path], url_prefix: str = "/uploads", max_bytes: int = 10 * 1024 * 1024) -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")
        self.max_bytes = max_bytes

    def save(self, original_name: str, mime_type: str, data: bytes) -> Attachment:
        """Write data under a generated name and return its Attachment record.

        Raises ValidationError for an empty payload or one above max_bytes.
        """
        if not data:
            raise ValidationError("Uploaded file is empty.")
        if len(data) > self.max_bytes:
            raise ValidationError(f"File too large. Maximum size is {self.max_bytes // (1024 * 1024)} MB.")

        display_name = Path(original_name or "upload").name
        suffix = Path(display_name).suffix
        if not _SAFE_SUFFIX.match(suffix):
            suffix = ""
        stored_name = f"files-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix.lower()}"

        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / stored_name).write_bytes(data)

        return Attachment(
            name=stored_name,
            original_name=display_name,
            mime_type=mime_type or "application/octet-stream",
            size=len(data),
            locator=f"{self.url_prefix}/{stored_name}",
        )

    def delete(self, name: str) -> None:
        """Remove a stored file by its generated name. Missing files are ignored."""
        (self.root / Path(name).name).unlink(missing_ok=True)
