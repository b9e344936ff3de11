"""Service-level errors. The handlers in app.main turn them into the JSON error envelope."""


class ShopError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(ShopError):
    status_code = 400


class Forbidden(ShopError):
    status_code = 403


class NotFound(ShopError):
    status_code = 404


class Conflict(ShopError):
    """Unique constraint violations (duplicate coupon code, city value, ...)."""

    status_code = 409


class TooManyRequests(ShopError):
    status_code = 429
