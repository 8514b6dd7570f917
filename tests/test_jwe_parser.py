"""
JWE Format Parser Tests

Tests for format detection, compact and JSON serialization decoding,
recipient normalization, and the error raised for each failure.

Usage:
    pytest tests/test_jwe_parser.py -v

    # Run specific group
    pytest tests/test_jwe_parser.py::TestJSONSerialization -v
"""

import base64
import json
import sys
from pathlib import Path

import pytest
from pydantic import ValidationError

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.jwe import (
    Base64DecodeError,
    EmptyInputError,
    HeaderDecodeError,
    InputEncodingError,
    InvalidPartsCountError,
    JSONSyntaxError,
    MixedSerializationError,
    Serialization,
    parse,
    parse_string,
)
from services.jwe.encoding import base64url_encode


# =============================================================================
# Test Fixtures
# =============================================================================

DIR_HEADER_B64 = "eyJhbGciOiJkaXIiLCJlbmMiOiJBMTI4R0NNIn0"
RSA_HEADER_B64 = "eyJhbGciOiJSU0EtT0FFUCIsImVuYyI6IkEyNTZHQ00ifQ"
EXAMPLE_COMPACT = f"{DIR_HEADER_B64}.encKey.aXY.Y2lwaGVydGV4dA.dGFn"


def b64(data) -> str:
    if isinstance(data, dict):
        data = json.dumps(data).encode()
    return base64url_encode(data)


def json_envelope(**members) -> str:
    """Shared members of a JSON serialization plus any overrides."""
    doc = {
        "protected": b64({"enc": "A256GCM"}),
        "iv": b64(b"0123456789ab"),
        "ciphertext": b64(b"secret bytes"),
        "tag": b64(b"sixteen byte tag"),
    }
    doc.update(members)
    return json.dumps(doc)


# =============================================================================
# Format detection
# =============================================================================

class TestDetection:

    @pytest.mark.parametrize("data", [
        "", "   ", "\n\t \r\n", b"", b"  \n",
        "\u00a0\u2003", "\u3000 \u2028", "\u00a0\u2003".encode("utf-8"),
    ])
    def test_empty_input(self, data):
        with pytest.raises(EmptyInputError):
            parse(data)

    def test_surrounding_whitespace_ignored(self):
        message = parse(f"\n  {EXAMPLE_COMPACT}  \r\n")
        assert message.serialization == Serialization.COMPACT

    def test_unicode_whitespace_trimmed(self):
        padded = f"\u00a0\u2003{EXAMPLE_COMPACT}\u3000\u205f"
        assert parse(padded) == parse(EXAMPLE_COMPACT)
        assert parse(padded.encode("utf-8")) == parse(EXAMPLE_COMPACT)

    def test_invalid_utf8_bytes_pass_through(self):
        with pytest.raises(InvalidPartsCountError) as exc:
            parse(b"\xc2\xa0\xff\xfe\xc2\xa0")
        assert exc.value.got == 1

    def test_unencodable_text(self):
        with pytest.raises(InputEncodingError) as exc:
            parse_string("\ud800")
        assert exc.value.kind == "input_encoding"

    def test_bytes_and_str_agree(self):
        assert parse(EXAMPLE_COMPACT.encode()) == parse_string(EXAMPLE_COMPACT)

    def test_brace_selects_json(self):
        message = parse("  " + json_envelope(encrypted_key=b64(b"k")))
        assert message.serialization == Serialization.JSON_FLATTENED

    def test_json_array_is_treated_as_compact(self):
        with pytest.raises(InvalidPartsCountError) as exc:
            parse("[1, 2]")
        assert exc.value.got == 1


# =============================================================================
# Compact serialization
# =============================================================================

class TestCompactSerialization:

    def test_example_token(self):
        message = parse(EXAMPLE_COMPACT)

        assert len(message.recipients) == 1
        recipient = message.recipients[0]
        assert recipient.header.algorithm == "dir"
        assert recipient.header.content_encryption == "A128GCM"
        assert recipient.header.private_params == {}
        assert recipient.encrypted_key == base64.urlsafe_b64decode("encKey==")
        assert message.initialization_vector == b"iv"
        assert message.cipher_text == b"ciphertext"
        assert message.tag == b"tag"
        assert message.additional_authenticated_data == b""
        assert message.unprotected == {}

    def test_protected_header_kept_byte_exact(self):
        message = parse(EXAMPLE_COMPACT)
        assert message.protected == b'{"alg":"dir","enc":"A128GCM"}'
        assert message.protected_params() == {"alg": "dir", "enc": "A128GCM"}

    def test_trailing_zero_bytes_preserved(self):
        message = parse(f"{RSA_HEADER_B64}.AAA.AAAA.Y2lwaGVydGV4dAA.AA")
        assert message.cipher_text == b"ciphertext\x00"
        assert message.recipients[0].encrypted_key == b"\x00\x00"
        assert message.initialization_vector == b"\x00\x00\x00"
        assert message.tag == b"\x00"

    def test_empty_encrypted_key(self):
        message = parse(f"{DIR_HEADER_B64}..aXY.Y2lwaGVydGV4dA.dGFn")
        assert message.recipients[0].encrypted_key == b""

    def test_segments_decode_exactly(self):
        key = bytes(range(256))
        iv = b"\xfa\xfb\xfc"
        token = ".".join([
            RSA_HEADER_B64, b64(key), b64(iv), b64(b"\xff" * 33), b64(b"\x01" * 16),
        ])
        message = parse(token)

        assert message.recipients[0].encrypted_key == key
        assert message.initialization_vector == iv
        assert message.cipher_text == b"\xff" * 33
        assert message.tag == b"\x01" * 16

    def test_private_params_from_header(self):
        header = b64({"alg": "ECDH-ES", "enc": "A128GCM", "epk": {"kty": "EC"}})
        message = parse(f"{header}..aXY.Y2lwaGVydGV4dA.dGFn")
        assert message.recipients[0].header.private_params == {"epk": {"kty": "EC"}}

    @pytest.mark.parametrize("token,count", [
        ("abc", 1),
        ("a.b.c", 3),
        ("a.b.c.d", 4),
        ("a.b.c.d.e.f", 6),
        (EXAMPLE_COMPACT + ".", 6),
    ])
    def test_invalid_parts_count(self, token, count):
        with pytest.raises(InvalidPartsCountError) as exc:
            parse(token)
        assert exc.value.expected == 5
        assert exc.value.got == count

    @pytest.mark.parametrize("index,role", [
        (0, "protected"),
        (1, "encrypted_key"),
        (2, "iv"),
        (3, "ciphertext"),
        (4, "tag"),
    ])
    def test_bad_base64_names_part(self, index, role):
        parts = EXAMPLE_COMPACT.split(".")
        parts[index] = "a*b+"
        with pytest.raises(Base64DecodeError) as exc:
            parse(".".join(parts))
        assert exc.value.part == role

    def test_padding_rejected(self):
        with pytest.raises(Base64DecodeError) as exc:
            parse(f"{DIR_HEADER_B64}.encKey.aXY=.Y2lwaGVydGV4dA.dGFn")
        assert exc.value.part == "iv"

    def test_impossible_length_rejected(self):
        with pytest.raises(Base64DecodeError) as exc:
            parse(f"{DIR_HEADER_B64}.encKey.aXY.Y2lwaGVydGV4dA.dGFnA")
        assert exc.value.part == "tag"

    def test_header_missing_alg(self):
        header = b64({"enc": "A128GCM"})
        with pytest.raises(HeaderDecodeError) as exc:
            parse(f"{header}.encKey.aXY.Y2lwaGVydGV4dA.dGFn")
        assert exc.value.field == "alg"

    def test_header_not_json(self):
        header = b64(b"not json")
        with pytest.raises(HeaderDecodeError):
            parse(f"{header}.encKey.aXY.Y2lwaGVydGV4dA.dGFn")

    def test_message_is_frozen(self):
        message = parse(EXAMPLE_COMPACT)
        with pytest.raises(ValidationError):
            message.tag = b"forged"


# =============================================================================
# JSON serialization
# =============================================================================

class TestJSONSerialization:

    def test_general_form_keeps_recipient_order(self):
        doc = json_envelope(
            unprotected={"jku": "https://example.com/jwks.json"},
            aad=b64(b"extra"),
            recipients=[
                {"header": {"alg": "RSA1_5", "enc": "A128CBC-HS256", "kid": "2011-04-29"},
                 "encrypted_key": b64(b"key one")},
                {"header": {"alg": "A128KW", "enc": "A128CBC-HS256", "kid": "7"},
                 "encrypted_key": b64(b"key two")},
            ],
        )
        message = parse(doc)

        assert message.serialization == Serialization.JSON_GENERAL
        assert [r.header.essential.key_id for r in message.recipients] == ["2011-04-29", "7"]
        assert [r.encrypted_key for r in message.recipients] == [b"key one", b"key two"]
        assert message.protected == b'{"enc": "A256GCM"}'
        assert message.unprotected == {"jku": "https://example.com/jwks.json"}
        assert message.initialization_vector == b"0123456789ab"
        assert message.cipher_text == b"secret bytes"
        assert message.tag == b"sixteen byte tag"
        assert message.additional_authenticated_data == b"extra"

    def test_flattened_form(self):
        header = {"alg": "A128KW", "enc": "A128GCM", "kid": "7"}
        message = parse(json_envelope(header=header, encrypted_key=b64(b"wrapped")))

        assert message.serialization == Serialization.JSON_FLATTENED
        assert len(message.recipients) == 1
        assert message.recipients[0].header.to_dict() == header
        assert message.recipients[0].encrypted_key == b"wrapped"

    def test_flattened_with_empty_recipients_array(self):
        message = parse(json_envelope(encrypted_key=b64(b"wrapped"), recipients=[]))
        assert len(message.recipients) == 1
        assert message.recipients[0].encrypted_key == b"wrapped"
        assert message.recipients[0].header is None

    def test_mixed_forms_rejected(self):
        doc = json_envelope(
            encrypted_key=b64(b"flat"),
            recipients=[{"encrypted_key": b64(b"general")}],
        )
        with pytest.raises(MixedSerializationError):
            parse(doc)

    def test_mixed_header_only_rejected(self):
        doc = json_envelope(
            header={"alg": "dir", "enc": "A128GCM"},
            recipients=[{"encrypted_key": b64(b"general")}],
        )
        with pytest.raises(MixedSerializationError):
            parse(doc)

    def test_no_recipient_members(self):
        message = parse(json_envelope(protected=b64({"alg": "dir", "enc": "A128GCM"})))

        assert message.serialization == Serialization.JSON_FLATTENED
        assert len(message.recipients) == 1
        assert message.recipients[0].header is None
        assert message.recipients[0].encrypted_key == b""

    def test_optional_shared_members_default_empty(self):
        message = parse(json.dumps({"ciphertext": b64(b"ct"), "encrypted_key": ""}))
        assert message.protected == b""
        assert message.initialization_vector == b""
        assert message.tag == b""
        assert message.protected_params() is None

    def test_unknown_members_ignored(self):
        message = parse(json_envelope(encrypted_key=b64(b"k"), extra={"a": 1}))
        assert message.recipients[0].encrypted_key == b"k"

    def test_recipient_header_missing_enc(self):
        doc = json_envelope(recipients=[{"header": {"alg": "RSA-OAEP"}}])
        with pytest.raises(HeaderDecodeError) as exc:
            parse(doc)
        assert exc.value.field == "enc"

    def test_bad_base64_names_recipient(self):
        doc = json_envelope(recipients=[
            {"encrypted_key": b64(b"ok")},
            {"encrypted_key": "not base64!"},
        ])
        with pytest.raises(Base64DecodeError) as exc:
            parse(doc)
        assert exc.value.part == "recipients[1].encrypted_key"

    def test_bad_base64_shared_member(self):
        with pytest.raises(Base64DecodeError) as exc:
            parse(json_envelope(encrypted_key="", aad="YWFk=="))
        assert exc.value.part == "aad"

    @pytest.mark.parametrize("doc", [
        '{"ciphertext": "Y3Q"',
        '{"iv": "aXY"}',
        '{"ciphertext": 12}',
        '{"ciphertext": "Y3Q", "recipients": {"encrypted_key": ""}}',
        '{"ciphertext": "Y3Q", "header": "alg"}',
    ])
    def test_malformed_json(self, doc):
        with pytest.raises(JSONSyntaxError):
            parse(doc)
