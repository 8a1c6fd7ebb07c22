"""Identity-service exceptions for provisioning and teardown."""

BODY_PREVIEW_LIMIT = 300


class IdentityError(Exception):
    """Base exception for all Identity API operations."""
    pass


class IdentityAPIError(IdentityError):
    """HTTP error from the Identity API.

    Attributes:
        status_code: HTTP status code (0 when no response was received)
        message: Response body or transport error text
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message[:BODY_PREVIEW_LIMIT]}")


class NotAuthenticatedError(IdentityError):
    """Access token requested before a successful login."""
    pass


class LoginFailedError(IdentityError):
    """Login call answered without an access token."""
    pass


class TenantNotFoundError(IdentityError):
    """Desired tenant has no server-assigned identifier."""
    pass


class UserProvisioningError(IdentityError):
    """Creating or deleting a test user failed."""
    pass


class ManifestError(IdentityError):
    """Setup manifest is missing, unreadable or malformed."""
    pass
