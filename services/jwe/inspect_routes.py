"""
JWE Envelope Parser - FastAPI Routes
Exposes envelope inspection to other services. Nothing is decrypted.

Endpoints:
- POST /api/jwe/inspect  - Parse a serialized JWE and summarize it
- GET  /api/jwe/health   - Liveness check
"""

import logging
import os
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from .errors import JWEError
from .models import Message
from .parser import parse


logger = logging.getLogger(__name__)


# ============================================================================
# Configuration
# ============================================================================

# Can be overridden via environment variables
MAX_ENVELOPE_BYTES = int(os.environ.get("JWE_MAX_ENVELOPE_BYTES", str(1024 * 1024)))
API_VERSION = "1.0.0"


# ============================================================================
# Response Models
# ============================================================================

class RecipientSummary(BaseModel):
    """What is known about one recipient without decrypting."""
    header: Optional[Dict[str, Any]] = Field(None, description="Per-recipient header")
    encrypted_key_length: int = Field(..., description="Length of the encrypted CEK in bytes")


class InspectResponse(BaseModel):
    """Summary of a parsed envelope."""
    serialization: str
    protected_header: Optional[Dict[str, Any]] = Field(None, description="Decoded protected header")
    unprotected_header: Dict[str, Any] = Field(default_factory=dict)
    recipients: List[RecipientSummary]
    iv_length: int
    ciphertext_length: int
    tag_length: int
    aad_length: int


def summarize(message: Message) -> InspectResponse:
    """Build the inspection summary for a parsed message."""
    recipients = [
        RecipientSummary(
            header=recipient.header.to_dict() if recipient.header else None,
            encrypted_key_length=len(recipient.encrypted_key),
        )
        for recipient in message.recipients
    ]

    return InspectResponse(
        serialization=message.serialization.value,
        protected_header=message.protected_params(),
        unprotected_header=message.unprotected,
        recipients=recipients,
        iv_length=len(message.initialization_vector),
        ciphertext_length=len(message.cipher_text),
        tag_length=len(message.tag),
        aad_length=len(message.additional_authenticated_data),
    )


# ============================================================================
# Router
# ============================================================================

router = APIRouter(prefix="/api/jwe", tags=["JWE Inspection"])


def _raise_too_large():
    raise HTTPException(
        status_code=413,
        detail=f"Envelope exceeds {MAX_ENVELOPE_BYTES} bytes"
    )


@router.post("/inspect", response_model=InspectResponse)
async def inspect_envelope(request: Request):
    """
    Parse a JWE sent as the raw request body.

    Accepts compact, general JSON, or flattened JSON serialization.
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > MAX_ENVELOPE_BYTES:
        logger.warning(f"Rejected envelope declaring {declared} bytes before reading it")
        _raise_too_large()

    # Chunked or misdeclared bodies are checked again once read
    body = await request.body()
    if len(body) > MAX_ENVELOPE_BYTES:
        _raise_too_large()

    try:
        message = parse(body)
    except JWEError as e:
        raise HTTPException(
            status_code=400,
            detail={"error": e.kind, "detail": str(e)}
        )

    logger.info(
        f"Inspected {message.serialization.value} envelope "
        f"with {len(message.recipients)} recipient(s)"
    )
    return summarize(message)


@router.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok", "version": API_VERSION}
