"""Error taxonomy for the contact API.

Every error carries the HTTP status and the message that is safe to show to
the caller. Details meant only for the server log travel separately.
"""

from typing import Dict, List, Optional


class ContactAPIError(Exception):
    """Base class for errors rendered as ``{"error": message}`` JSON responses."""

    status_code = 500
    message = "Errore interno"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.headers = headers or {}
        super().__init__(self.message)


class ClientError(ContactAPIError):
    """The request itself is wrong: method, body or field validation."""

    status_code = 400
    message = "Richiesta non valida"


class InvalidBodyError(ClientError):
    message = "Body non valido"


class PayloadTooLargeError(ClientError):
    """Raised when the request body exceeds the read cap."""

    message = "Payload troppo grande"

    def __init__(self, limit: int):
        self.limit = limit
        # The rest of the body is never read, so the connection cannot be reused.
        super().__init__(headers={"Connection": "close"})


class RateLimitExceededError(ClientError):
    status_code = 429
    message = "Too many requests"

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(headers={"Retry-After": str(retry_after_seconds)})


class ConfigError(ContactAPIError):
    """Required server-side configuration is missing."""

    status_code = 500
    message = "Errore di configurazione del server"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__()


class DeliveryError(ContactAPIError):
    """Every delivery transport failed."""

    status_code = 502
    message = "Invio email non riuscito"

    def __init__(self, failures: List[str]):
        self.failures = failures
        super().__init__()
