"""
AWS Signature Version 4 for S3-compatible object stores

This package computes the SigV4 authentication headers for requests sent to
S3-compatible endpoints. It performs no network I/O of its own and has no
runtime dependencies outside the standard library.
"""

import logging

from .config import Config
from .exceptions import InvalidURLError, MissingCredentialsError, SigningError
from .headers import Headers
from .sigv4 import (
    EMPTY_SHA256_HASH,
    UNSIGNED_PAYLOAD,
    Signature,
    Signer,
    SignRequest,
    sign_request,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "Config",
    "Headers",
    "Signer",
    "SignRequest",
    "Signature",
    "sign_request",
    "EMPTY_SHA256_HASH",
    "UNSIGNED_PAYLOAD",
    "SigningError",
    "InvalidURLError",
    "MissingCredentialsError",
]
