"""
Domain exceptions for the purchase flow.

Checkout failures all share one response shape ``{"error": message}``; only
``Unauthenticated`` uses a distinct status code. Webhook failures split into
protocol errors (400, the processor will not retry productively) and
``StorageFailure`` (500, the processor retries delivery).
"""


class CheckoutError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class Unauthenticated(CheckoutError):
    status_code = 401


class InvalidPrincipal(CheckoutError):
    pass


class MalformedRequest(CheckoutError):
    pass


class CourseUnavailable(CheckoutError):
    pass


class PriceMismatch(CheckoutError):
    pass


class AlreadyEntitled(CheckoutError):
    pass


class PaymentProviderError(CheckoutError):
    pass


class WebhookError(Exception):
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class MissingSignature(WebhookError):
    pass


class InvalidSignature(WebhookError):
    pass


class MissingMetadata(WebhookError):
    pass


class MalformedEvent(WebhookError):
    pass


class StorageFailure(WebhookError):
    status_code = 500
