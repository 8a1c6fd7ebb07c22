"""Identity service user operations."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional, TYPE_CHECKING

from .client import IdentityClient, describe_http_failure, json_or_empty
from .exceptions import IdentityAPIError, UserProvisioningError

if TYPE_CHECKING:
    from ..catalog import DesiredUser

logger = logging.getLogger(__name__)


def index_by_username(users: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Map lowercase username to user record, skipping records without a username."""
    index: Dict[str, Dict[str, Any]] = {}
    for user in users:
        username = user.get("username")
        if isinstance(username, str) and username:
            index[username.lower()] = user
    return index


class UserService:
    """Service for managing Identity users."""

    def __init__(self, client: IdentityClient):
        """Initialize user service.

        Args:
            client: Authenticated Identity client
        """
        self.client = client

    def list_users(self, tenant_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """List users, optionally scoped to one tenant."""
        params = {"tenantId": tenant_id} if tenant_id else None
        data = json_or_empty(self.client.get("users", params=params))
        users = data.get("users") if isinstance(data, dict) else None
        return users if isinstance(users, list) else []

    def create_user(self, desired: "DesiredUser", tenant_id: str) -> Optional[str]:
        """Create an enabled user with every desired attribute in one call.

        Returns:
            Server-assigned user id, when the service reports one

        Raises:
            UserProvisioningError: On HTTP failure or a ``success: false`` body
        """
        payload = {
            "username": desired.username,
            "email": desired.email,
            "firstName": desired.first_name,
            "lastName": desired.last_name,
            "password": desired.password,
            "enabled": True,
            "tenantId": tenant_id,
            "roles": list(desired.roles),
        }
        try:
            data = json_or_empty(self.client.post("users", json=payload))
        except IdentityAPIError as exc:
            raise UserProvisioningError(
                f'Failed to create user "{desired.username}": {describe_http_failure(exc)}'
            ) from exc

        if isinstance(data, dict) and data.get("success") is False:
            raise UserProvisioningError(
                f'Failed to create user "{desired.username}": {data.get("errorMessage") or "Unknown error"}'
            )
        user_id = data.get("userId") if isinstance(data, dict) else None
        logger.info("Created user '%s' (userId=%s)", desired.username, user_id)
        return user_id

    def delete_user(self, user_id: str, username: Optional[str] = None) -> None:
        """Delete a user by id.

        Raises:
            UserProvisioningError: On HTTP failure
        """
        try:
            self.client.delete(f"users/{user_id}")
        except IdentityAPIError as exc:
            raise UserProvisioningError(
                f'Failed to delete user "{username or user_id}" (userId={user_id}): {describe_http_failure(exc)}'
            ) from exc
        logger.info("Deleted user '%s' (userId=%s)", username or user_id, user_id)
