"""Validation and repair of base64 image data URLs.

Payloads reach the read path in three shapes: well-formed data URLs,
bare base64 bodies with no header, and data URLs whose header was mangled
somewhere upstream (wrong separators, truncated tag, missing ``data:``).
``EncodedImageCodec.normalize`` turns all three into a canonical
``data:image/<fmt>;base64,<body>`` value, or returns ``None`` so the caller
can hide the image. It never raises.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, field
from typing import Optional, Tuple


SUPPORTED_FORMATS: Tuple[str, ...] = ("png", "jpeg", "gif", "webp")
DEFAULT_FORMAT = "jpeg"
MIN_BODY_LENGTH = 16

# Ordered: first matching prefix wins. Prefixes are the base64 form of the
# leading file-signature bytes.
SIGNATURES: Tuple[Tuple[str, str], ...] = (
    ("png", "iVBORw0KGgo"),  # \x89PNG\r\n\x1a\n
    ("jpeg", "/9j/"),  # \xff\xd8\xff
    ("gif", "R0lGOD"),  # GIF87a / GIF89a
    ("webp", "UklGR"),  # RIFF container
)

_FORMAT_ALIASES = {"jpg": "jpeg", "pjpeg": "jpeg"}

_WELL_FORMED_RE = re.compile(
    r"^data:image/(?P<fmt>png|jpeg|jpg|gif|webp);base64,(?P<body>.*)$",
    re.IGNORECASE | re.DOTALL,
)

# Known broken header shapes, tried in order; the body is whatever follows.
_MALFORMED_DELIMITERS: Tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*data:image/[a-z0-9.+-]*\s*[;:,]\s*base64\s*[;:,]+(?P<body>.*)$", re.IGNORECASE | re.DOTALL),
    re.compile(r"^\s*data:image/[a-z0-9.+-]*base64\s*[;:,]+(?P<body>.*)$", re.IGNORECASE | re.DOTALL),
    re.compile(r"^\s*data:(?:image/[a-z0-9.+-]*)?\s*;?\s*base64\s*[;:,]+(?P<body>.*)$", re.IGNORECASE | re.DOTALL),
    re.compile(r"^\s*image/[a-z0-9.+-]*\s*[;:,]\s*base64\s*[;:,]+(?P<body>.*)$", re.IGNORECASE | re.DOTALL),
    re.compile(r"^\s*base64\s*[;:,]+(?P<body>.*)$", re.IGNORECASE | re.DOTALL),
    re.compile(r"^\s*data:image/[a-z0-9.+-]*\s*[;:,]+(?P<body>.*)$", re.IGNORECASE | re.DOTALL),
)

_BODY_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class EncodedPayload:
    """A validated image data URL."""

    format: str
    body: str
    repaired: bool = field(default=False, compare=False)

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"

    @property
    def value(self) -> str:
        return f"data:{self.mime_type};base64,{self.body}"

    def __str__(self) -> str:
        return self.value


def _clean_body(raw: str) -> str:
    return _WHITESPACE_RE.sub("", raw)


def _body_is_valid(body: str) -> bool:
    if len(body) < MIN_BODY_LENGTH:
        return False
    # A single leftover character can never be produced by base64.
    if len(body) % 4 == 1:
        return False
    return bool(_BODY_RE.match(body))


def sniff_format(body: str) -> str:
    """Infer the image format from the leading base64 characters."""
    for fmt, prefix in SIGNATURES:
        if body.startswith(prefix):
            return fmt
    return DEFAULT_FORMAT


class EncodedImageCodec:
    """Repairs and validates textual image payloads."""

    def normalize(self, payload: object) -> Optional[EncodedPayload]:
        if not isinstance(payload, str):
            return None
        text = payload.strip()
        if not text:
            return None

        match = _WELL_FORMED_RE.match(text)
        if match:
            body = _clean_body(match.group("body"))
            if len(body) >= MIN_BODY_LENGTH:
                fmt = match.group("fmt").lower()
                fmt = _FORMAT_ALIASES.get(fmt, fmt)
                if not _body_is_valid(body):
                    return None
                return EncodedPayload(format=fmt, body=body)

        body = self._recover_body(text)
        if body is None:
            body = _clean_body(text)
        if not _body_is_valid(body):
            return None
        return EncodedPayload(format=sniff_format(body), body=body, repaired=True)

    def _recover_body(self, text: str) -> Optional[str]:
        for pattern in _MALFORMED_DELIMITERS:
            match = pattern.match(text)
            if not match:
                continue
            body = _clean_body(match.group("body"))
            if len(body) >= MIN_BODY_LENGTH:
                return body
        return None

    def encode(self, data: bytes, fmt: str) -> Optional[EncodedPayload]:
        """Wrap raw image bytes, validating the result like any other payload."""
        fmt = _FORMAT_ALIASES.get(fmt.lower(), fmt.lower())
        if fmt not in SUPPORTED_FORMATS:
            return None
        body = base64.b64encode(data).decode("ascii")
        return self.normalize(f"data:image/{fmt};base64,{body}")

    def decode(self, payload: EncodedPayload) -> bytes:
        try:
            return base64.b64decode(payload.body, validate=True)
        except (binascii.Error, ValueError):
            # Unpadded bodies are common after repair
            padded = payload.body + "=" * (-len(payload.body) % 4)
            return base64.b64decode(padded)


_default_codec = EncodedImageCodec()


def normalize_payload(payload: object) -> Optional[EncodedPayload]:
    return _default_codec.normalize(payload)
