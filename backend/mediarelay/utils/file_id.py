"""
Reversible encoding of upstream file ids into URL path segments.

Upstream ids are opaque strings. They are turned into unpadded
URL-safe base64 (alphabet ``A-Z a-z 0-9 - _``) so they can sit in a
single path segment, and decoded back when a public URL is requested.
"""
import base64
import binascii
import logging
import re
from typing import Optional

logger = logging.getLogger(__name__)

_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def encode_file_id(file_id: str) -> str:
    """
    Encode a raw upstream id as a path-safe token.

    Args:
        file_id: Raw identifier returned by the relay

    Returns:
        Unpadded URL-safe base64 token
    """
    encoded = base64.urlsafe_b64encode(file_id.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=")


def decode_file_id(segment: str) -> Optional[str]:
    """
    Decode a path segment produced by encode_file_id.

    Returns None for anything that is not a canonical encoding: characters
    outside the alphabet, impossible lengths, padding, or bytes that are not
    UTF-8. A None result means "malformed", which callers report
    differently from an id the relay does not know.
    """
    if not segment or not _SEGMENT_RE.match(segment):
        return None

    # A single leftover character can never come out of base64
    remainder = len(segment) % 4
    if remainder == 1:
        return None

    padded = segment + "=" * ((4 - remainder) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
        file_id = raw.decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Failed to decode file id {segment!r}: {e}")
        return None

    # Reject non-canonical spellings so decode stays the exact inverse
    if encode_file_id(file_id) != segment:
        return None

    return file_id
