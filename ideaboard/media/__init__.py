from ideaboard.media.codec import EncodedImageCodec, EncodedPayload, normalize_payload
from ideaboard.media.ingest import (
    ImageIngestPipeline,
    IngestRejection,
    IngestResult,
    RawImageFile,
    RejectionReason,
)

__all__ = [
    "EncodedImageCodec",
    "EncodedPayload",
    "ImageIngestPipeline",
    "IngestRejection",
    "IngestResult",
    "RawImageFile",
    "RejectionReason",
    "normalize_payload",
]
