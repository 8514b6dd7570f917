"""
JWE Envelope Parser - Header Model
Typed essential header fields plus an open bag of private parameters.

Field policy:
- alg / enc are required strings; absence or a wrong type fails the parse
- every other essential field is optional and degrades to its default
  when absent or malformed, so producers that omit metadata still parse
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field

from .errors import HeaderDecodeError, HeaderEncodeError

logger = logging.getLogger(__name__)

# JSON name -> attribute name, in marshal order
ESSENTIAL_FIELDS: Dict[str, str] = {
    "alg": "algorithm",
    "enc": "content_encryption",
    "cty": "content_type",
    "kid": "key_id",
    "typ": "type",
    "x5t": "x509_cert_thumbprint",
    "x5t#256": "x509_cert_thumbprint_s256",
    "x5u": "x509_url",
    "x5c": "x509_cert_chain",
    "crit": "critical",
    "jku": "jwk_set_url",
}

RESERVED_NAMES = frozenset(ESSENTIAL_FIELDS)

_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_MISSING = object()


# ============================================================================
# Field extraction
# ============================================================================

def _as_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected string, got {type(value).__name__}")
    return value


def _as_string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        raise ValueError(f"expected array, got {type(value).__name__}")
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"expected array of strings, found {type(item).__name__}")
    return list(value)


def _as_url(value: Any) -> str:
    """
    Accept any URI reference, relative ones included, and return the text
    unchanged so it marshals back byte-for-byte.
    """
    text = _as_string(value)
    if _CONTROL_RE.search(text):
        raise ValueError("control character in URL")
    if _BAD_ESCAPE_RE.search(text):
        raise ValueError("invalid percent-escape in URL")

    parts = urlsplit(text)
    if not parts.scheme:
        if text.startswith(":"):
            raise ValueError("missing protocol scheme")
        if ":" in parts.path.split("/", 1)[0]:
            raise ValueError("first path segment in URL cannot contain colon")
    # Raises ValueError on a non-numeric or out of range port
    parts.port
    return text


def extract_field(
    mapping: Mapping[str, Any],
    name: str,
    convert: Callable[[Any], Any],
    required: bool = False,
) -> Any:
    """
    Read one header field.

    With required=True any failure raises HeaderDecodeError naming the field.
    Otherwise absence or a malformed value returns None and the caller keeps
    its default.
    """
    value = mapping.get(name, _MISSING)
    if value is _MISSING:
        if required:
            raise HeaderDecodeError(f"required header field '{name}' is missing", field=name)
        return None

    try:
        return convert(value)
    except ValueError as e:
        if required:
            raise HeaderDecodeError(f"header field '{name}': {e}", field=name) from e
        logger.debug(f"Ignoring malformed optional header field '{name}': {e}")
        return None


# ============================================================================
# Models
# ============================================================================

class EssentialHeader(BaseModel):
    """Header fields with RFC 7516 defined semantics."""
    model_config = ConfigDict(frozen=True)

    algorithm: str = Field(..., description="Key encryption algorithm (alg)")
    content_encryption: str = Field(..., description="Content encryption algorithm (enc)")
    content_type: str = Field("", description="Content type (cty)")
    key_id: str = Field("", description="Key ID (kid)")
    type: str = Field("", description="Media type of the complete JWE (typ)")
    x509_cert_thumbprint: str = Field("", description="SHA-1 certificate thumbprint (x5t)")
    x509_cert_thumbprint_s256: str = Field("", description="SHA-256 certificate thumbprint (x5t#256)")
    x509_url: Optional[str] = Field(None, description="X.509 URL (x5u), as sent")
    x509_cert_chain: List[str] = Field(default_factory=list, description="Certificate chain, leaf first (x5c)")
    critical: List[str] = Field(default_factory=list, description="Critical extension names (crit)")
    jwk_set_url: Optional[str] = Field(None, description="JWK Set URL (jku), as sent")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "EssentialHeader":
        """
        Build the essential header from a decoded JSON object.

        Raises:
            HeaderDecodeError: alg or enc missing or not a string
        """
        values: Dict[str, Any] = {
            "algorithm": extract_field(mapping, "alg", _as_string, required=True),
            "content_encryption": extract_field(mapping, "enc", _as_string, required=True),
        }

        optional = [
            ("cty", _as_string),
            ("kid", _as_string),
            ("typ", _as_string),
            ("x5t", _as_string),
            ("x5t#256", _as_string),
            ("x5u", _as_url),
            ("x5c", _as_string_list),
            ("crit", _as_string_list),
            ("jku", _as_url),
        ]
        for name, convert in optional:
            value = extract_field(mapping, name, convert)
            if value is not None:
                values[ESSENTIAL_FIELDS[name]] = value

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Populated fields under their JSON names; empty optionals are omitted."""
        result: Dict[str, Any] = {}
        for name, attr in ESSENTIAL_FIELDS.items():
            value = getattr(self, attr)
            if name in ("alg", "enc"):
                result[name] = value
            elif value:
                result[name] = list(value) if isinstance(value, list) else value
        return result


class Header(BaseModel):
    """EssentialHeader merged with arbitrary private parameters."""
    model_config = ConfigDict(frozen=True)

    essential: EssentialHeader
    private_params: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Header":
        """Partition a JSON object into essential fields and private params."""
        if not isinstance(data, Mapping):
            raise HeaderDecodeError(
                f"header must be a JSON object, got {type(data).__name__}"
            )

        essential = EssentialHeader.from_mapping(data)
        private_params = {k: v for k, v in data.items() if k not in RESERVED_NAMES}
        return cls(essential=essential, private_params=private_params)

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> "Header":
        """Unmarshal header JSON text."""
        try:
            decoded = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise HeaderDecodeError(f"malformed header JSON: {e}") from e
        return cls.from_dict(decoded)

    def to_dict(self) -> Dict[str, Any]:
        """
        Flat JSON object of essential fields and private params.

        Raises:
            HeaderEncodeError: a private param uses a reserved name
        """
        for key in self.private_params:
            if key in RESERVED_NAMES:
                raise HeaderEncodeError(key)

        result = self.essential.to_dict()
        result.update(self.private_params)
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False)

    def get(self, name: str, default: Any = None) -> Any:
        """
        Look up a field by its JSON name. Essential fields always return
        their stored value; default only applies to missing private params.
        """
        if name in ESSENTIAL_FIELDS:
            return getattr(self.essential, ESSENTIAL_FIELDS[name])
        return self.private_params.get(name, default)

    # Convenience accessors
    @property
    def algorithm(self) -> str:
        return self.essential.algorithm

    @property
    def content_encryption(self) -> str:
        return self.essential.content_encryption
