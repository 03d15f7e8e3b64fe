from dataclasses import dataclass, field, replace
from typing import Any, Optional

DEFAULT_ENDPOINT = "http://localhost:9000"
DEFAULT_PORT = 9000
DEFAULT_REGION = "us-east-1"
DEFAULT_SERVICE = "s3"


@dataclass(frozen=True)
class Config:
    """
    Connection and credential settings shared by every signing call.

    Only ``access_key``, ``secret_key``, ``session_token``, ``region`` and
    ``service`` take part in signing. The endpoint and transport fields are
    carried for the client that sends the signed request.
    """

    endpoint: str = DEFAULT_ENDPOINT
    port: int = DEFAULT_PORT
    secure: Optional[bool] = None
    transport: Any = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = field(default=None, repr=False)
    region: str = DEFAULT_REGION
    service: str = DEFAULT_SERVICE
    session_token: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        # An explicit None falls back to the default, same as leaving it out.
        if self.endpoint is None:
            object.__setattr__(self, "endpoint", DEFAULT_ENDPOINT)
        if self.port is None:
            object.__setattr__(self, "port", DEFAULT_PORT)
        if self.region is None:
            object.__setattr__(self, "region", DEFAULT_REGION)
        if self.service is None:
            object.__setattr__(self, "service", DEFAULT_SERVICE)

    def replace(self, **changes: Any) -> "Config":
        return replace(self, **changes)
