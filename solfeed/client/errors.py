"""Error taxonomy shared by every client SDK call.

``retryable`` tells the view layer whether to offer a retry; callers never
have to inspect status codes themselves.
"""
import httpx


class ClientError(Exception):
    retryable = False

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConflictError(ClientError):
    """Duplicate relation. Toggle paths treat it as a successful no-op."""


class NotFoundError(ClientError):
    pass


class RequestValidationError(ClientError):
    pass


class AuthenticationError(ClientError):
    pass


class TransientError(ClientError):
    retryable = True


class ServiceError(ClientError):
    retryable = True


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return str(body)


def error_from_response(response: httpx.Response) -> ClientError:
    status = response.status_code
    message = _detail(response)
    if status == 409:
        return ConflictError(message, status)
    if status == 404:
        return NotFoundError(message, status)
    if status in (400, 422):
        return RequestValidationError(message, status)
    if status in (401, 403):
        return AuthenticationError(message, status)
    if status in (408, 429, 502, 503, 504):
        return TransientError(message, status)
    return ServiceError(message, status)
