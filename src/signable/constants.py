"""
Application-wide constants for Signable.

Timeout values, size limits, layout policy numbers, and environment
variable names are centralized here for easy maintenance and
configuration.
"""

from __future__ import annotations

import importlib.metadata

try:
    __version__ = importlib.metadata.version("signable")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"

__all__ = [
    "BYTES_PER_MB",
    "DEFAULT_API_URL",
    "DEFAULT_API_URLS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_PROVIDER",
    "DEFAULT_RECONCILE_ATTEMPTS",
    "DEFAULT_RETRY_BACKOFF",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT_HTTP",
    "DEFAULT_WEBHOOK_PORT",
    "DROPBOX_SIGN_API_URL",
    "ENV_API_KEY",
    "ENV_API_URL",
    "ENV_PROVIDER",
    "ENV_TEST_MODE",
    "ENV_TIMEOUT",
    "ENV_WEBHOOK_SECRET",
    "ERROR_BODY_PREVIEW_LENGTH",
    "MAX_RESPONSE_SIZE",
    "MAX_TIMEOUT",
    "MIN_TIMEOUT",
    "PDF_MAGIC",
    "PROVIDERS",
    "PROVIDER_DROPBOX_SIGN",
    "PROVIDER_SIGNWELL",
    "RECV_BUFFER_SIZE",
    "SANITIZE_MAX_PASSES",
    "__version__",
]

# ── Provider endpoints ────────────────────────────────────────────────

PROVIDER_SIGNWELL = "signwell"
PROVIDER_DROPBOX_SIGN = "dropbox_sign"
PROVIDERS = (PROVIDER_SIGNWELL, PROVIDER_DROPBOX_SIGN)
DEFAULT_PROVIDER = PROVIDER_SIGNWELL

DEFAULT_API_URL = "https://www.signwell.com/api/v1"
DROPBOX_SIGN_API_URL = "https://api.hellosign.com/v3"

DEFAULT_API_URLS: dict[str, str] = {
    PROVIDER_SIGNWELL: DEFAULT_API_URL,
    PROVIDER_DROPBOX_SIGN: DROPBOX_SIGN_API_URL,
}


# ── Timeout values (seconds) ──────────────────────────────────────────

# Every provider call (create, status, cancel, remind, download)
DEFAULT_TIMEOUT_HTTP = 30

MIN_TIMEOUT = 1
MAX_TIMEOUT = 600


# ── Size units and limits ─────────────────────────────────────────────

BYTES_PER_MB = 1024 * 1024

# Maximum response body accepted from the provider (completed PDFs included)
MAX_RESPONSE_SIZE = 50 * 1024 * 1024

RECV_BUFFER_SIZE = 8192

# Provider error bodies are truncated to this many characters in messages
ERROR_BODY_PREVIEW_LENGTH = 500


# ── Retry configuration (read-only provider calls only) ─────────────

DEFAULT_MAX_RETRIES = 2

DEFAULT_RETRY_DELAY = 1.0

DEFAULT_RETRY_BACKOFF = 2.0

# Compare-and-set attempts before a status update gives up
DEFAULT_RECONCILE_ATTEMPTS = 5


# ── Text sanitizer ──────────────────────────────────────────────────

# Upper bound on sanitize passes before falling back to aggressive stripping
SANITIZE_MAX_PASSES = 8


# ── Environment variable names ──────────────────────────────────────

ENV_PROVIDER = "SIGNABLE_PROVIDER"
ENV_API_URL = "SIGNABLE_API_URL"
ENV_API_KEY = "SIGNABLE_API_KEY"
ENV_TIMEOUT = "SIGNABLE_TIMEOUT"
ENV_TEST_MODE = "SIGNABLE_TEST_MODE"
ENV_WEBHOOK_SECRET = "SIGNABLE_WEBHOOK_SECRET"


# ── Webhook receiver ────────────────────────────────────────────────

DEFAULT_WEBHOOK_PORT = 8787


# PDF file magic bytes
PDF_MAGIC = b"%PDF-"
