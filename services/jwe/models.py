"""
JWE Envelope Parser - Pydantic Models
Parsed envelope structure plus the wire shape of the JSON serialization.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .header import Header


class Serialization(str, Enum):
    """Wire form a message was parsed from."""
    COMPACT = "compact"
    JSON_GENERAL = "json_general"
    JSON_FLATTENED = "json_flattened"


class Recipient(BaseModel):
    """Per-recipient header and wrapped content encryption key."""
    model_config = ConfigDict(frozen=True)

    header: Optional[Header] = Field(None, description="Per-recipient header; None if the JSON form omits it")
    encrypted_key: bytes = Field(b"", description="Encrypted CEK; empty for direct key agreement")


class Message(BaseModel):
    """
    A parsed JWE.

    AEAD parts are shared by all recipients. The compact form always yields
    one recipient; the JSON forms yield one or more.
    """
    model_config = ConfigDict(frozen=True)

    serialization: Serialization
    protected: bytes = Field(b"", description="Decoded protected header, byte-exact")
    unprotected: Dict[str, Any] = Field(default_factory=dict, description="Shared unprotected header")
    initialization_vector: bytes = b""
    cipher_text: bytes = b""
    tag: bytes = b""
    additional_authenticated_data: bytes = b""
    recipients: List[Recipient]

    @field_validator('recipients')
    @classmethod
    def validate_recipients(cls, v: List[Recipient]) -> List[Recipient]:
        """A message always has at least one recipient."""
        if not v:
            raise ValueError("message must have at least one recipient")
        return v

    def protected_params(self) -> Optional[Dict[str, Any]]:
        """Protected header as a JSON object, or None if absent or not an object."""
        if not self.protected:
            return None
        try:
            decoded = json.loads(self.protected)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        return decoded if isinstance(decoded, dict) else None


# ============================================================================
# JSON serialization wire shape
# ============================================================================

class RecipientWire(BaseModel):
    """One entry of the general form's recipients array."""
    header: Optional[Dict[str, Any]] = None
    encrypted_key: Optional[str] = None


class JSONSerialization(BaseModel):
    """
    Top-level JSON object, able to hold the general form (recipients array)
    and the flattened form (header / encrypted_key inlined) at the same time.
    Unknown members are ignored.
    """
    protected: Optional[str] = None
    unprotected: Optional[Dict[str, Any]] = None
    iv: Optional[str] = None
    ciphertext: str
    tag: Optional[str] = None
    aad: Optional[str] = None
    recipients: Optional[List[RecipientWire]] = None

    # Flattened form
    header: Optional[Dict[str, Any]] = None
    encrypted_key: Optional[str] = None

    @property
    def has_flattened_recipient(self) -> bool:
        return bool({"header", "encrypted_key"} & self.model_fields_set)
