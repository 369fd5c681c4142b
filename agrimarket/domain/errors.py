"""Error kinds raised by the services and mapped to HTTP responses by the API."""


class AgrimarketError(Exception):
    """Base exception for all agrimarket domain errors."""

    pass


class NotFoundError(AgrimarketError):
    """Raised when an entity looked up by id (or another key) doesn't exist."""

    def __init__(self, resource: str, field: str, value):
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} not found with {field}: {value}")


class InvalidArgumentError(AgrimarketError):
    """Raised for malformed input, e.g. a cart quantity below 1."""

    pass


class InvalidStateError(AgrimarketError):
    """Raised when an operation isn't allowed in the entity's current state."""

    pass


class ConflictError(AgrimarketError):
    """Raised when a uniqueness constraint was hit by a concurrent request."""

    pass


class TokenExpiredError(AgrimarketError):
    """Raised when a refresh token is past its expiry date."""

    def __init__(self, token: str):
        self.token = token
        super().__init__("Refresh token was expired. Please make a new signin request")


class ForbiddenError(AgrimarketError):
    """Raised when the caller lacks the role required for an operation."""

    pass
