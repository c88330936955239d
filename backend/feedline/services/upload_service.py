"""
Feedline Backend - Upload Acceptor
====================================

What:  Accepts at most one image per request from the multipart field `image`
       and stores it in the images bucket.
How:   Client-declared MIME type is checked against an allow-list, the content
       is read (bounded by max_upload_size), the client filename is reduced to
       its final path component and prefixed with an ISO-8601 timestamp.
Who:   Called by the request pipeline before authentication.

Acceptance policy:
    - No `image` part             → None (the request simply has no upload)
    - Bad MIME type / too large /
      unusable filename           → UploadResult(accepted=False), request goes on
    - Otherwise                   → file written, UploadResult(accepted=True)
    Extra file parts are dropped. The stored extension always matches the
    accepted type. Stored files are never removed when a later stage fails.

Bucket layout:
    <storage_root>/images/2024-01-01T00:00:00.000Z-cat.png
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import aiofiles
from starlette.datastructures import FormData, UploadFile

from feedline.exceptions import FileStorageError, NotFoundError
from feedline.schemas.pipeline import UploadResult

logger = logging.getLogger(__name__)

# Accepted MIME type → file extensions that may carry it (first is canonical).
# Why: the images route derives Content-Type from the extension, so a stored
# name must never end in anything but an image extension.
IMAGE_EXTENSIONS = {
    "image/png": (".png",),
    "image/jpg": (".jpg", ".jpeg"),
    "image/jpeg": (".jpg", ".jpeg"),
}
ALLOWED_MIME_TYPES = frozenset(IMAGE_EXTENSIONS)

UPLOAD_FIELD = "image"
IMAGES_BUCKET = "images"


def utc_timestamp() -> str:
    """Current UTC time as e.g. 2024-01-01T00:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_filename(filename: Optional[str]) -> Optional[str]:
    """
    Reduce a client-supplied filename to something safe to store.

    Keeps only the last path component (either separator style) and strips
    non-printable characters. Returns None when nothing usable is left.
    Ordinary names like "cat.png" come back unchanged.
    """
    if not filename:
        return None
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = "".join(ch for ch in name if ch.isprintable())
    if name in ("", ".", ".."):
        return None
    return name


def with_image_extension(name: str, mime_type: str) -> str:
    """
    Keep `name` when its extension fits `mime_type`, otherwise append the
    canonical one ("evil.html" sent as image/png is stored as "evil.html.png").
    """
    extensions = IMAGE_EXTENSIONS[mime_type]
    if Path(name).suffix.lower() in extensions:
        return name
    return name + extensions[0]


class ImageStorage:
    """
    The images bucket: one flat directory, no per-user partitioning.

    Writes go through aiofiles so a slow disk does not block the event loop.
    Reads (for GET /images/{name}) are resolved strictly inside the bucket.
    """

    def __init__(self, storage_root: str, bucket: str = IMAGES_BUCKET):
        self.bucket = bucket
        self.root = (Path(storage_root) / bucket).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        logger.info("ImageStorage initialized with bucket=%s", self.root)

    def path_for(self, name: str) -> Path:
        """
        Absolute path of `name` inside the bucket.

        Raises:
            NotFoundError: the name would resolve outside the bucket.
        """
        path = (self.root / name).resolve()
        if path.parent != self.root:
            raise NotFoundError(resource="image", resource_id=name)
        return path

    def existing_path(self, name: str) -> Path:
        path = self.path_for(name)
        if not path.is_file():
            raise NotFoundError(resource="image", resource_id=name)
        return path

    async def save(self, name: str, content: bytes) -> Path:
        """
        Write `content` under `name`.

        Raises:
            FileStorageError if the write fails.
        """
        path = self.path_for(name)
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.info("File stored: %s/%s (%d bytes)", self.bucket, name, len(content))
        return path


class UploadAcceptor:
    """
    Validates and persists the single `image` attachment of a request.

    Args:
        storage:          Destination bucket.
        max_upload_size:  Uploads larger than this many bytes are dropped.
        clock:            Returns the timestamp prefix; injectable for tests.
    """

    def __init__(
        self,
        storage: ImageStorage,
        max_upload_size: int,
        clock: Callable[[], str] = utc_timestamp,
    ):
        self.storage = storage
        self.max_upload_size = max_upload_size
        self._clock = clock

    async def accept_from_form(self, form: Optional[FormData]) -> Optional[UploadResult]:
        """
        Pick the first `image` file part out of a parsed form and accept it.

        Every other file part (a second `image`, or any other field name) is
        dropped with a warning.
        """
        if form is None:
            return None

        candidate: Optional[UploadFile] = None
        for field, value in form.multi_items():
            if not isinstance(value, UploadFile):
                continue
            if field == UPLOAD_FIELD and candidate is None:
                candidate = value
            else:
                logger.warning(
                    "Dropping extra file part %r (filename=%r)", field, value.filename
                )
        return await self.accept(candidate)

    async def accept(self, upload: Optional[UploadFile]) -> Optional[UploadResult]:
        if upload is None:
            return None

        mime_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            logger.info(
                "Ignoring upload %r: content type %r is not accepted",
                upload.filename,
                mime_type,
            )
            return self._rejected(mime_type, upload.size or 0)

        content = await upload.read(self.max_upload_size + 1)
        if len(content) > self.max_upload_size:
            logger.info(
                "Ignoring upload %r: larger than %d bytes",
                upload.filename,
                self.max_upload_size,
            )
            return self._rejected(mime_type, upload.size or len(content))

        name = sanitize_filename(upload.filename)
        if name is None:
            logger.warning("Ignoring upload with unusable filename %r", upload.filename)
            return self._rejected(mime_type, len(content))

        stored_name = f"{self._clock()}-{with_image_extension(name, mime_type)}"
        await self.storage.save(stored_name, content)

        return UploadResult(
            accepted=True,
            stored_name=stored_name,
            mime_type=mime_type,
            size_bytes=len(content),
        )

    @staticmethod
    def _rejected(mime_type: str, size: int) -> UploadResult:
        return UploadResult(accepted=False, mime_type=mime_type, size_bytes=size)
