"""
JWE Envelope Parser - Exceptions
Every failure the parser can report is a subclass of JWEError.
"""

from typing import Optional


class JWEError(Exception):
    """Base exception for envelope parsing failures."""
    kind = "jwe_error"


class EmptyInputError(JWEError):
    """Raised when the input is empty after trimming whitespace."""
    kind = "empty_input"

    def __init__(self, message: str = "empty buffer"):
        super().__init__(message)


class InvalidPartsCountError(JWEError):
    """Raised when a compact serialization does not have exactly 5 segments."""
    kind = "invalid_parts_count"

    def __init__(self, got: int, expected: int = 5):
        self.expected = expected
        self.got = got
        super().__init__(
            f"invalid compact serialization: expected {expected} parts, got {got}"
        )


class Base64DecodeError(JWEError):
    """Raised when a base64url component cannot be decoded."""
    kind = "base64_decode"

    def __init__(self, part: str, reason: str = ""):
        self.part = part
        message = f"failed to base64url-decode '{part}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class HeaderDecodeError(JWEError):
    """Raised when a header is malformed or lacks a required field."""
    kind = "header_decode"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class HeaderEncodeError(JWEError):
    """Raised when a private parameter shadows a reserved header name."""
    kind = "header_encode"

    def __init__(self, field: str):
        self.field = field
        super().__init__(
            f"private parameter '{field}' collides with a reserved header field"
        )


class MixedSerializationError(JWEError):
    """Raised when flattened and general JSON recipients are both present."""
    kind = "mixed_serialization"

    def __init__(self, message: str = "invalid message: mixed flattened/full json serialization"):
        super().__init__(message)


class JSONSyntaxError(JWEError):
    """Raised when the JSON serialization is malformed."""
    kind = "json_syntax"


class InputEncodingError(JWEError):
    """Raised when text input cannot be encoded as UTF-8."""
    kind = "input_encoding"
