class PushError(Exception):
    pass


class ValidationError(PushError):
    """Missing or malformed request fields; surfaced as 400."""


class StoreError(PushError):
    """Data store failure while resolving recipients; aborts the invocation."""


class DeliveryError(PushError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientDeliveryError(DeliveryError):
    """Endpoint failed but may succeed on a later sweep."""


class PermanentDeliveryError(DeliveryError):
    """Endpoint reported gone; the subscription row must be removed."""
