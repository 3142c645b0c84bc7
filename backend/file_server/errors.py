"""HTTP-facing errors. Rendered as {"error": message} by the app's exception handlers."""


class ApiError(Exception):
    """An error with a fixed HTTP status and a client-safe message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequestError(ApiError):
    status_code = 400


class UnauthorizedError(ApiError):
    status_code = 401


class NotFoundError(ApiError):
    status_code = 404

    def __init__(self, message: str = "File not found"):
        super().__init__(message)


class PayloadTooLargeError(ApiError):
    status_code = 413


class InternalServerError(ApiError):
    status_code = 500
