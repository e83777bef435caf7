"""Client-side attachment ingest: limits, downscaling, recompression, encoding."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence

from ideaboard.media.codec import EncodedImageCodec, EncodedPayload
from ideaboard.utils.image_processing import constrain_image, decode_image, encode_image


logger = logging.getLogger(__name__)

MAX_FILE_BYTES = 5 * 1024 * 1024
MAX_ATTACHMENTS = 5
MAX_DIMENSION = 1920
QUALITY = 0.8


class RejectionReason(str, Enum):
    UNSUPPORTED_TYPE = "unsupported_type"
    FILE_TOO_LARGE = "file_too_large"
    BATCH_LIMIT = "batch_limit"
    DECODE_FAILED = "decode_failed"
    ENCODE_FAILED = "encode_failed"


@dataclass(slots=True)
class RawImageFile:
    """An attachment as selected by the user, before ingest."""

    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def declared_type(self) -> str:
        if self.content_type:
            return self.content_type.split(";", 1)[0].strip().lower()
        guessed, _ = mimetypes.guess_type(self.filename or "")
        return (guessed or "").lower()

    @classmethod
    def from_file_storage(cls, storage: Any) -> "RawImageFile":
        """Build from a werkzeug ``FileStorage`` upload."""
        return cls(
            filename=storage.filename or "",
            content_type=storage.mimetype or None,
            data=storage.read(),
        )


@dataclass(frozen=True, slots=True)
class IngestRejection:
    filename: str
    reason: RejectionReason
    message: str

    def to_dict(self) -> dict:
        return {"filename": self.filename, "reason": self.reason.value, "message": self.message}


@dataclass(slots=True)
class IngestResult:
    payloads: List[EncodedPayload] = field(default_factory=list)
    rejections: List[IngestRejection] = field(default_factory=list)


class _TransformError(Exception):
    def __init__(self, reason: RejectionReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason


class ImageIngestPipeline:
    """Validates a batch of user images and turns the accepted ones into payloads.

    Files are checked in selection order (type, then size, then the batch
    ceiling); rejected files are reported and skipped. Accepted files are
    decoded, downscaled and re-encoded concurrently in worker threads, and the
    successful payloads are returned in selection order.
    """

    def __init__(
        self,
        *,
        max_file_bytes: int = MAX_FILE_BYTES,
        max_attachments: int = MAX_ATTACHMENTS,
        max_dimension: int = MAX_DIMENSION,
        quality: float = QUALITY,
        codec: Optional[EncodedImageCodec] = None,
    ) -> None:
        self.max_file_bytes = max_file_bytes
        self.max_attachments = max_attachments
        self.max_dimension = max_dimension
        self.quality = quality
        self.codec = codec or EncodedImageCodec()

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ImageIngestPipeline":
        return cls(
            max_file_bytes=int(config.get("MAX_ATTACHMENT_BYTES", MAX_FILE_BYTES)),
            max_attachments=int(config.get("MAX_ATTACHMENTS", MAX_ATTACHMENTS)),
            max_dimension=int(config.get("MAX_IMAGE_DIMENSION", MAX_DIMENSION)),
            quality=float(config.get("IMAGE_QUALITY", QUALITY)),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def screen(
        self, files: Sequence[RawImageFile], current_count: int = 0
    ) -> tuple[List[RawImageFile], List[IngestRejection]]:
        """Apply the type, size and batch checks without touching pixel data."""
        accepted: List[RawImageFile] = []
        rejections: List[IngestRejection] = []
        slots = max(0, self.max_attachments - max(0, current_count))
        for f in files:
            if not f.declared_type.startswith("image/"):
                rejections.append(IngestRejection(
                    f.filename, RejectionReason.UNSUPPORTED_TYPE,
                    f"{f.filename or 'File'} is not an image",
                ))
                continue
            if f.size > self.max_file_bytes:
                limit_mb = self.max_file_bytes / (1024 * 1024)
                rejections.append(IngestRejection(
                    f.filename, RejectionReason.FILE_TOO_LARGE,
                    f"{f.filename or 'File'} exceeds the {limit_mb:g} MB limit",
                ))
                continue
            if len(accepted) >= slots:
                rejections.append(IngestRejection(
                    f.filename, RejectionReason.BATCH_LIMIT,
                    f"At most {self.max_attachments} images can be attached",
                ))
                continue
            accepted.append(f)
        return accepted, rejections

    # ------------------------------------------------------------------
    # Transform
    # ------------------------------------------------------------------
    def transform(self, f: RawImageFile) -> EncodedPayload:
        try:
            img, source_format = decode_image(f.data)
        except Exception as exc:
            raise _TransformError(RejectionReason.DECODE_FAILED, f"{f.filename or 'File'} could not be read as an image") from exc

        fmt = source_format or "jpeg"
        resized_img, resized = constrain_image(img, self.max_dimension)
        try:
            encoded = encode_image(resized_img, fmt, quality=self.quality)
        except Exception as exc:
            raise _TransformError(RejectionReason.ENCODE_FAILED, f"{f.filename or 'File'} could not be compressed") from exc

        # Requality alone can grow already-optimized files; keep the source then.
        if not resized and source_format is not None and len(encoded) > f.size:
            encoded = f.data

        payload = self.codec.encode(encoded, fmt)
        if payload is None:
            raise _TransformError(RejectionReason.ENCODE_FAILED, f"{f.filename or 'File'} produced an invalid payload")
        return payload

    async def ingest(self, files: Sequence[RawImageFile], current_count: int = 0) -> IngestResult:
        accepted, rejections = self.screen(files, current_count)
        outcomes = await asyncio.gather(
            *(asyncio.to_thread(self.transform, f) for f in accepted),
            return_exceptions=True,
        )
        result = IngestResult(rejections=rejections)
        for f, outcome in zip(accepted, outcomes):
            if isinstance(outcome, _TransformError):
                logger.info("Attachment %s dropped: %s", f.filename, outcome.reason.value, exc_info=outcome.__cause__)
                result.rejections.append(IngestRejection(f.filename, outcome.reason, str(outcome)))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.payloads.append(outcome)
        return result
