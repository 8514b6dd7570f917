"""
JWE Envelope Parser - Base64url helpers
RFC 7515 Section 2: base64url without padding.
"""

import base64
import binascii
import re
from typing import Union

from .errors import Base64DecodeError

_B64URL_RE = re.compile(rb"[A-Za-z0-9_-]*")


def base64url_decode(data: Union[str, bytes], part: str) -> bytes:
    """
    Strictly decode an unpadded base64url segment.

    Args:
        data: The encoded segment
        part: Role of the segment, reported in the error

    Raises:
        Base64DecodeError: on padding, foreign characters, or bad length
    """
    if isinstance(data, str):
        try:
            data = data.encode('ascii')
        except UnicodeEncodeError:
            raise Base64DecodeError(part, "non-ASCII character")

    if not _B64URL_RE.fullmatch(data):
        raise Base64DecodeError(part, "illegal character")

    if len(data) % 4 == 1:
        raise Base64DecodeError(part, "invalid length")

    padded = data + b'=' * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise Base64DecodeError(part, str(e)) from e


def base64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url text."""
    return base64.urlsafe_b64encode(data).rstrip(b'=').decode('ascii')
