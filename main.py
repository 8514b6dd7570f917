#!/usr/bin/env python3
"""
JWE Envelope Inspection Service - Backend API
Parses JWE (RFC 7516) envelopes in compact and JSON serialization and
reports their structure. No decryption is performed.
"""

import logging
import os
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from services.jwe.inspect_routes import router as jwe_router, API_VERSION


# ============================================================================
# Configuration
# ============================================================================

class Config:
    """Service configuration, read from the environment."""
    VERSION = API_VERSION
    HOST: str = os.getenv("JWE_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("JWE_PORT", "8000"))
    LOG_LEVEL: str = os.getenv("JWE_LOG_LEVEL", "INFO").upper()
    DEBUG: bool = os.getenv("JWE_DEBUG", "false").lower() == "true"

    @classmethod
    def get_log_level(cls) -> int:
        """Numeric log level; DEBUG wins over JWE_LOG_LEVEL."""
        if cls.DEBUG:
            return logging.DEBUG
        return getattr(logging, cls.LOG_LEVEL, logging.INFO)


config = Config()


# ============================================================================
# Logging
# ============================================================================

def setup_logging():
    """Configure root logging to stdout."""
    logging.basicConfig(
        level=config.get_log_level(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    return logging.getLogger(__name__)

logger = setup_logging()


# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title="JWE Envelope Inspection API",
    version=config.VERSION,
    description="Parse and inspect JSON Web Encryption envelopes"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(jwe_router)
logger.info("✓ JWE inspection API enabled (/api/jwe)")


if __name__ == "__main__":
    print("=" * 70)
    print(f"JWE Envelope Inspection Service v{config.VERSION}")
    print("=" * 70)
    print(f"Listening: http://{config.HOST}:{config.PORT}")
    print(f"API docs:  http://localhost:{config.PORT}/docs")
    print(f"Health:    http://localhost:{config.PORT}/api/jwe/health")
    print("=" * 70)

    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
