"""Identity service admin API client library.

Architecture:
- client.py: HTTP client bound to a bearer token
- auth.py: credential login and token claims
- tenants.py: tenant listing, creation, enabling and deletion
- users.py: user listing, creation and deletion
- exceptions.py: typed exceptions for error handling
"""
from .client import (
    IdentityClient,
    normalize_identity_api_base,
    json_or_empty,
    describe_http_failure,
    REQUEST_TIMEOUT,
)
from .auth import (
    AuthHelper,
    decode_token_claims,
    tenant_id_claim,
    login_super_user,
)
from .exceptions import (
    IdentityError,
    IdentityAPIError,
    NotAuthenticatedError,
    LoginFailedError,
    TenantNotFoundError,
    UserProvisioningError,
    ManifestError,
)
from .tenants import (
    TenantService,
    TENANT_ENABLED,
    index_by_name,
    tenant_ids_by_name,
    full_update_payload,
)
from .users import (
    UserService,
    index_by_username,
)

__all__ = [
    # Client
    "IdentityClient",
    "normalize_identity_api_base",
    "json_or_empty",
    "describe_http_failure",
    "REQUEST_TIMEOUT",

    # Auth
    "AuthHelper",
    "decode_token_claims",
    "tenant_id_claim",
    "login_super_user",

    # Exceptions
    "IdentityError",
    "IdentityAPIError",
    "NotAuthenticatedError",
    "LoginFailedError",
    "TenantNotFoundError",
    "UserProvisioningError",
    "ManifestError",

    # Services
    "TenantService",
    "UserService",
    "TENANT_ENABLED",
    "index_by_name",
    "tenant_ids_by_name",
    "full_update_payload",
    "index_by_username",
]
