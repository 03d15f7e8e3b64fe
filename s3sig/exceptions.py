class SigningError(Exception):
    """Base class for errors raised while signing a request."""


class InvalidURLError(SigningError, ValueError):
    """The request URL cannot be used to build a canonical request."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class MissingCredentialsError(SigningError):
    """The configuration lacks the access key or the secret key."""

    def __init__(self, missing: str) -> None:
        self.missing = missing
        super().__init__(f"Unable to sign request without {missing}")
