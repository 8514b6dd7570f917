"""
JWE Envelope Parser - Format Parser
Detects the serialization of a JWE and decodes it into a Message.

Parsing Steps:
1. Trim surrounding whitespace, reject empty input
2. Detect format: '{' starts the JSON serialization, anything else is compact
3. Decode every base64url component to its exact bytes
4. Unmarshal headers through the Header model
5. Normalize recipients into one non-empty list

No cryptographic operation is performed; alg/enc are carried as opaque strings.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from .encoding import base64url_decode
from .errors import (
    EmptyInputError,
    InputEncodingError,
    InvalidPartsCountError,
    JSONSyntaxError,
    JWEError,
    MixedSerializationError,
)
from .header import Header
from .models import JSONSerialization, Message, Recipient, Serialization

logger = logging.getLogger(__name__)

COMPACT_PARTS = ("protected", "encrypted_key", "iv", "ciphertext", "tag")

# Characters with the Unicode White_Space property
WHITESPACE = (
    "\t\n\v\f\r \x85\xa0\u1680"
    "\u2000\u2001\u2002\u2003\u2004\u2005\u2006\u2007\u2008\u2009\u200a"
    "\u2028\u2029\u202f\u205f\u3000"
)


def parse(data: Union[bytes, str]) -> Message:
    """
    Parse a JWE in compact or JSON serialization.

    Args:
        data: The serialized JWE; str input is UTF-8 encoded

    Returns:
        A fully populated Message with at least one recipient

    Raises:
        EmptyInputError: nothing but whitespace
        InputEncodingError: str input that is not valid Unicode text
        InvalidPartsCountError: compact input without exactly 5 segments
        Base64DecodeError: a component is not valid base64url
        HeaderDecodeError: a header is malformed or lacks alg/enc
        MixedSerializationError: flattened and general recipients both present
        JSONSyntaxError: malformed JSON serialization
    """
    try:
        buf = _trim_space(data)
        if not buf:
            raise EmptyInputError()

        if buf[:1] == b'{':
            logger.debug("Detected JSON serialization")
            return _parse_json(buf)

        logger.debug("Detected compact serialization")
        return _parse_compact(buf)
    except JWEError as e:
        logger.info(f"Rejected JWE input ({e.kind}): {e}")
        raise


def parse_string(s: str) -> Message:
    """Parse a JWE given as text."""
    return parse(s)


def _trim_space(data: Union[bytes, str]) -> bytes:
    """
    Strip leading and trailing Unicode whitespace and return UTF-8 bytes.

    Byte input is never rejected here: undecodable bytes pass through
    unchanged via surrogateescape and fail later in the format path.
    """
    if isinstance(data, str):
        try:
            return data.strip(WHITESPACE).encode('utf-8')
        except UnicodeEncodeError as e:
            raise InputEncodingError(f"input is not encodable as UTF-8: {e.reason}") from e

    text = bytes(data).decode('utf-8', errors='surrogateescape')
    return text.strip(WHITESPACE).encode('utf-8', errors='surrogateescape')


def _decode_optional(value: Optional[str], part: str) -> bytes:
    if value is None:
        return b""
    return base64url_decode(value, part)


def _header_or_none(value: Optional[Dict[str, Any]]) -> Optional[Header]:
    if value is None:
        return None
    return Header.from_dict(value)


def _parse_json(buf: bytes) -> Message:
    try:
        wire = JSONSerialization.model_validate_json(buf)
    except ValidationError as e:
        raise JSONSyntaxError(f"invalid JSON serialization: {e.errors()[0]['msg']}") from e

    general = wire.recipients or []
    recipients: List[Recipient]

    if wire.has_flattened_recipient:
        if general:
            raise MixedSerializationError()
        serialization = Serialization.JSON_FLATTENED
        recipients = [
            Recipient(
                header=_header_or_none(wire.header),
                encrypted_key=_decode_optional(wire.encrypted_key, "encrypted_key"),
            )
        ]
    elif general:
        serialization = Serialization.JSON_GENERAL
        recipients = [
            Recipient(
                header=_header_or_none(entry.header),
                encrypted_key=_decode_optional(
                    entry.encrypted_key, f"recipients[{i}].encrypted_key"
                ),
            )
            for i, entry in enumerate(general)
        ]
    else:
        # Flattened form with neither header nor encrypted_key (e.g. "dir"
        # with alg in the protected header)
        serialization = Serialization.JSON_FLATTENED
        recipients = [Recipient()]

    return Message(
        serialization=serialization,
        protected=_decode_optional(wire.protected, "protected"),
        unprotected=wire.unprotected or {},
        initialization_vector=_decode_optional(wire.iv, "iv"),
        cipher_text=base64url_decode(wire.ciphertext, "ciphertext"),
        tag=_decode_optional(wire.tag, "tag"),
        additional_authenticated_data=_decode_optional(wire.aad, "aad"),
        recipients=recipients,
    )


def _parse_compact(buf: bytes) -> Message:
    parts = buf.split(b'.')
    if len(parts) != len(COMPACT_PARTS):
        raise InvalidPartsCountError(got=len(parts), expected=len(COMPACT_PARTS))

    decoded = {
        role: base64url_decode(part, role)
        for role, part in zip(COMPACT_PARTS, parts)
    }

    header = Header.from_json(decoded["protected"])

    return Message(
        serialization=Serialization.COMPACT,
        protected=decoded["protected"],
        initialization_vector=decoded["iv"],
        cipher_text=decoded["ciphertext"],
        tag=decoded["tag"],
        recipients=[
            Recipient(header=header, encrypted_key=decoded["encrypted_key"]),
        ],
    )
