"""Errors raised by request handlers and turned into JSON responses by the app.

Each error names a translation key so the message reaches the user in the
language of their session; ``message`` overrides the key with a literal text.
"""


class ApiError(Exception):
    status_code = 500
    default_key = "error.generic"

    def __init__(self, message: str | None = None, key: str | None = None, **params):
        self.message = message
        self.key = key or self.default_key
        self.params = params
        super().__init__(message or self.key)

    def describe(self, translate) -> str:
        if self.message:
            return self.message
        return translate(self.key, **self.params)


class ValidationError(ApiError):
    status_code = 400
    default_key = "error.invalid_payload"


class AuthenticationRequired(ApiError):
    status_code = 401
    default_key = "error.login_required"


class AuthorizationDenied(ApiError):
    status_code = 403
    default_key = "error.admin_required"


class NotFound(ApiError):
    status_code = 404
    default_key = "error.not_found"


class Conflict(ApiError):
    status_code = 409
    default_key = "error.conflict"


class RateLimited(ApiError):
    status_code = 429
    default_key = "error.rate_limited"


class UpstreamServiceError(ApiError):
    status_code = 502
    default_key = "error.upstream"
