"""
AWS Signature Version 4 request signing.

Turns a request description (method, URL, headers, body) plus a ``Config``
into the ``Host``, ``X-Amz-Date``, ``X-Amz-Content-Sha256`` and
``Authorization`` headers an S3-compatible endpoint expects. The caller's
header mapping is never modified; the signed headers come back on the
returned ``Signature``.
"""

import datetime
import hmac
import logging
import re
from dataclasses import dataclass, field
from hashlib import sha256
from types import MappingProxyType
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import SplitResult, quote, unquote_to_bytes, urlsplit

from .body import EMPTY_SHA256_HASH, Body
from .config import Config
from .exceptions import InvalidURLError, MissingCredentialsError
from .headers import Headers

logger = logging.getLogger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"
SIGV4_TIMESTAMP = "%Y%m%dT%H%M%SZ"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
DEFAULT_PORTS = {"http": 80, "https": 443}
DEFAULT_UNSIGNED_HEADERS = frozenset({"content-length"})

AUTHORIZATION = "authorization"
HOST = "host"
X_AMZ_DATE = "x-amz-date"
X_AMZ_CONTENT_SHA256 = "x-amz-content-sha256"
X_AMZ_SECURITY_TOKEN = "x-amz-security-token"

_WHITESPACE = re.compile(r"\s+")
_QUOTED = re.compile(r'("[^"]*")')

Clock = Callable[[], datetime.datetime]

__all__ = [
    "EMPTY_SHA256_HASH",
    "UNSIGNED_PAYLOAD",
    "SignRequest",
    "Signature",
    "Signer",
    "sign_request",
]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class SignRequest:
    """A request to be signed."""

    http_method: str
    url: str
    headers: Optional[Mapping[str, Any]] = None
    body: Any = None
    apply_checksum_header: bool = True
    # A single header name may be passed as a plain string.
    unsigned_headers: Union[str, Iterable[str]] = DEFAULT_UNSIGNED_HEADERS

    def __post_init__(self) -> None:
        names = self.unsigned_headers
        if isinstance(names, str):
            names = [names]
        object.__setattr__(
            self, "unsigned_headers", frozenset(name.lower() for name in names)
        )


@dataclass(frozen=True)
class Signature:
    """
    Result of signing a request.

    ``headers`` holds only the headers the signer is responsible for, keyed by
    lowercase name: ``host``, ``x-amz-date``, ``x-amz-security-token`` when a
    session token is configured, ``x-amz-content-sha256`` unless suppressed,
    and ``authorization``. ``content_sha256`` is populated even when the
    checksum header was suppressed.
    """

    headers: Mapping[str, str]
    content_sha256: str
    canonical_request: str = field(repr=False)
    string_to_sign: str = field(repr=False)
    signature: str
    # Payload consumed from a non-seekable stream; send this instead.
    buffered_body: Optional[bytes] = field(default=None, repr=False)


def host_header(url: str) -> Tuple[SplitResult, str]:
    """
    Split ``url`` and derive the value of its ``Host`` header.

    The port is only included when it differs from the scheme default.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as exc:
        raise InvalidURLError(url, str(exc)) from exc
    if parts.scheme not in DEFAULT_PORTS:
        raise InvalidURLError(url, f"unsupported scheme {parts.scheme!r}")
    host = parts.hostname
    if not host:
        raise InvalidURLError(url, "missing host")
    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS[parts.scheme]:
        host = f"{host}:{port}"
    return parts, host


def canonical_uri(path: str) -> str:
    if not path:
        return "/"
    # Decoded to bytes so escapes that are not UTF-8 survive re-encoding.
    return "/".join(
        quote(unquote_to_bytes(segment), safe="") for segment in path.split("/")
    )


def canonical_query_string(query: str) -> str:
    key_val_pairs = []
    for pair in query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        key_val_pairs.append(
            (
                quote(unquote_to_bytes(key), safe=""),
                quote(unquote_to_bytes(value), safe=""),
            )
        )
    # Sorted by encoded key, then by value for repeated keys.
    return "&".join(f"{key}={value}" for key, value in sorted(key_val_pairs))


def canonical_header_value(value: str) -> str:
    """Trim the value and fold whitespace runs, leaving quoted text alone."""
    pieces = _QUOTED.split(value.strip())
    return "".join(
        piece if index % 2 else _WHITESPACE.sub(" ", piece)
        for index, piece in enumerate(pieces)
    )


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), sha256).digest()


def derive_signing_key(secret_key: str, date: str, region: str, service: str) -> bytes:
    k_date = _hmac(f"AWS4{secret_key}".encode("utf-8"), date)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


class Signer:
    """
    Signs requests with the credentials and scope from a ``Config``.

    The signer keeps no state between calls and may be shared between
    threads. ``clock`` supplies the signing time when a request carries no
    ``X-Amz-Date`` header.
    """

    def __init__(self, config: Config, clock: Optional[Clock] = None) -> None:
        self.config = config
        self.clock = clock or utc_now

    def sign_request(
        self,
        http_method: str,
        url: str,
        headers: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        *,
        apply_checksum_header: bool = True,
        unsigned_headers: Union[str, Iterable[str]] = DEFAULT_UNSIGNED_HEADERS,
    ) -> Signature:
        return self.sign(
            SignRequest(
                http_method=http_method,
                url=url,
                headers=headers,
                body=body,
                apply_checksum_header=apply_checksum_header,
                unsigned_headers=unsigned_headers,
            )
        )

    def sign(self, request: SignRequest) -> Signature:
        parts, host = host_header(request.url)
        headers = Headers(request.headers or {})

        if HOST not in headers:
            headers[HOST] = host

        if X_AMZ_DATE not in headers:
            headers[X_AMZ_DATE] = self._timestamp()
        timestamp = headers[X_AMZ_DATE]
        date = timestamp[:8]

        if self.config.session_token:
            headers[X_AMZ_SECURITY_TOKEN] = self.config.session_token

        buffered_body = None
        if X_AMZ_CONTENT_SHA256 in headers:
            content_sha256 = headers[X_AMZ_CONTENT_SHA256]
        else:
            body = Body.wrap(request.body)
            content_sha256 = body.digest()
            buffered_body = body.buffered
            if request.apply_checksum_header:
                headers[X_AMZ_CONTENT_SHA256] = content_sha256

        signed = self._headers_to_sign(headers, request.unsigned_headers)
        signed_headers = ";".join(signed)
        canonical_request = "\n".join(
            [
                request.http_method.upper(),
                canonical_uri(parts.path),
                canonical_query_string(parts.query),
                "".join(f"{name}:{value}\n" for name, value in signed.items()),
                signed_headers,
                content_sha256,
            ]
        )
        logger.debug("CanonicalRequest:\n%s", canonical_request)

        scope = self._credential_scope(date)
        string_to_sign = "\n".join(
            [
                ALGORITHM,
                timestamp,
                scope,
                sha256(canonical_request.encode("utf-8")).hexdigest(),
            ]
        )
        logger.debug("StringToSign:\n%s", string_to_sign)

        signature = hmac.new(
            self._signing_key(date), string_to_sign.encode("utf-8"), sha256
        ).hexdigest()
        logger.debug("Signature:\n%s", signature)

        headers[AUTHORIZATION] = (
            f"{ALGORITHM} Credential={self.config.access_key}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )

        result = {
            name: headers[name]
            for name in (
                HOST,
                X_AMZ_DATE,
                X_AMZ_SECURITY_TOKEN,
                X_AMZ_CONTENT_SHA256,
                AUTHORIZATION,
            )
            if name in headers
        }
        return Signature(
            headers=MappingProxyType(result),
            content_sha256=content_sha256,
            canonical_request=canonical_request,
            string_to_sign=string_to_sign,
            signature=signature,
            buffered_body=buffered_body,
        )

    def _timestamp(self) -> str:
        now = self.clock()
        if now.tzinfo is not None:
            now = now.astimezone(datetime.timezone.utc)
        return now.strftime(SIGV4_TIMESTAMP)

    def _credential_scope(self, date: str) -> str:
        return f"{date}/{self.config.region}/{self.config.service}/aws4_request"

    def _headers_to_sign(
        self, headers: Headers, unsigned_headers: FrozenSet[str]
    ) -> Dict[str, str]:
        """Canonical header values keyed by name, in sorted name order."""
        return {
            name: ",".join(canonical_header_value(v) for v in headers.get_all(name))
            for name in sorted(headers)
            if name != AUTHORIZATION and name not in unsigned_headers
        }

    def _signing_key(self, date: str) -> bytes:
        if not self.config.access_key:
            raise MissingCredentialsError("an access key")
        if not self.config.secret_key:
            raise MissingCredentialsError("a secret key")
        return derive_signing_key(
            self.config.secret_key, date, self.config.region, self.config.service
        )


def sign_request(
    config: Config,
    http_method: str,
    url: str,
    headers: Optional[Mapping[str, Any]] = None,
    body: Any = None,
    apply_checksum_header: bool = True,
    unsigned_headers: Union[str, Iterable[str]] = DEFAULT_UNSIGNED_HEADERS,
    clock: Optional[Clock] = None,
) -> Signature:
    """Sign a single request. See ``Signer.sign_request``."""
    return Signer(config, clock=clock).sign_request(
        http_method,
        url,
        headers,
        body,
        apply_checksum_header=apply_checksum_header,
        unsigned_headers=unsigned_headers,
    )
