"""
JWE Envelope Parser
Parses JSON Web Encryption (RFC 7516) envelopes into typed models.

Serializations: compact (5 segments), general JSON, flattened JSON
Scope: structure only. alg/enc are opaque identifiers; nothing is decrypted.
Library: pydantic (models), FastAPI (inspection routes)
"""

from .errors import (
    JWEError,
    EmptyInputError,
    InvalidPartsCountError,
    Base64DecodeError,
    HeaderDecodeError,
    HeaderEncodeError,
    MixedSerializationError,
    JSONSyntaxError,
    InputEncodingError,
)
from .header import EssentialHeader, Header, RESERVED_NAMES
from .models import Message, Recipient, Serialization
from .parser import parse, parse_string

__all__ = [
    'JWEError',
    'EmptyInputError',
    'InvalidPartsCountError',
    'Base64DecodeError',
    'HeaderDecodeError',
    'HeaderEncodeError',
    'MixedSerializationError',
    'JSONSyntaxError',
    'InputEncodingError',
    'EssentialHeader',
    'Header',
    'RESERVED_NAMES',
    'Message',
    'Recipient',
    'Serialization',
    'parse',
    'parse_string',
]
