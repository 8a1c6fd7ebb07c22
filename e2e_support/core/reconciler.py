"""
Tenant/user reconciliation for e2e provisioning.

Converges the Identity service to the desired-state catalog:

    catalog ──> Reconciler ──> TenantService / UserService ──> Identity API

Tenants are created when missing and re-enabled when disabled. Users whose
(tenant, roles, enabled) triple drifted are deleted and recreated; the API
offers no update-in-place for users. Running the reconciler twice is a no-op
the second time.
"""
from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .batching import run_batches_strict
from .catalog import Catalog, DEFAULT_CATALOG, DesiredUser
from .identity import (
    IdentityClient,
    IdentityError,
    REQUEST_TIMEOUT,
    TenantNotFoundError,
    TenantService,
    TENANT_ENABLED,
    UserService,
    index_by_name,
    index_by_username,
    login_super_user,
    tenant_ids_by_name,
)

logger = logging.getLogger(__name__)

USER_BATCH_SIZE = 2
MAX_CREATE_ATTEMPTS = 3
RETRY_BACKOFF_SECONDS = 0.2


# ─────────────────────────────────────────────────────────────────────────────
# Convergence decision
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Converged:
    """Existing user already matches the desired entry."""
    user_id: str


@dataclass(frozen=True)
class NeedsRecreate:
    """Existing user drifted and must be deleted before creation."""
    user_id: str
    reasons: Tuple[str, ...]


@dataclass(frozen=True)
class Missing:
    """No user with the desired username exists."""


Decision = Union[Converged, NeedsRecreate, Missing]


def normalize_roles(roles: Any) -> List[str]:
    """Sorted lowercase role list; anything that is not a list counts as no roles."""
    if not isinstance(roles, (list, tuple)):
        return []
    return sorted(str(role).lower() for role in roles)


def decide(existing: Optional[Dict[str, Any]], desired: DesiredUser, tenant_id: str) -> Decision:
    """Compare a listed user with its desired entry.

    A listed user without ``enabled`` counts as enabled, one without roles as
    having none. Records lacking an id are treated as missing.
    """
    if not existing or not existing.get("id"):
        return Missing()

    reasons = []
    existing_tenant = existing.get("tenantId") if isinstance(existing.get("tenantId"), str) else None
    if existing_tenant != tenant_id:
        reasons.append(f"tenant {existing_tenant} != {tenant_id}")
    actual_roles = normalize_roles(existing.get("roles"))
    expected_roles = normalize_roles(desired.roles)
    if actual_roles != expected_roles:
        reasons.append(f"roles {actual_roles} != {expected_roles}")
    enabled = existing.get("enabled") if isinstance(existing.get("enabled"), bool) else True
    if enabled is not True:
        reasons.append("disabled")

    if reasons:
        return NeedsRecreate(existing["id"], tuple(reasons))
    return Converged(existing["id"])


# ─────────────────────────────────────────────────────────────────────────────
# Reconciler
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ReconciliationResult:
    """Names ensured by a provisioning run (recorded in the manifest)."""
    tenants: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)
    created_tenants: List[str] = field(default_factory=list)
    enabled_tenants: List[str] = field(default_factory=list)
    created_users: List[str] = field(default_factory=list)
    recreated_users: List[str] = field(default_factory=list)


class Reconciler:
    """Converge tenants and users of the Identity service to a catalog."""

    def __init__(
        self,
        client: IdentityClient,
        catalog: Catalog = DEFAULT_CATALOG,
        sleep: Callable[[float], None] = time.sleep,
        user_batch_size: int = USER_BATCH_SIZE,
        max_create_attempts: int = MAX_CREATE_ATTEMPTS,
    ):
        self.catalog = catalog
        self.tenants = TenantService(client)
        self.users = UserService(client)
        self.sleep = sleep
        self.user_batch_size = user_batch_size
        self.max_create_attempts = max_create_attempts
        self._user_index: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._result = ReconciliationResult()

    def run(self) -> ReconciliationResult:
        self._result = ReconciliationResult()
        tenant_ids = self.reconcile_tenants()
        self.reconcile_users(tenant_ids)
        self._result.tenants = list(self.catalog.tenants)
        self._result.users = list(self.catalog.usernames)
        return self._result

    def reconcile_tenants(self) -> Dict[str, str]:
        """Create missing tenants and enable disabled ones.

        Returns:
            Lowercase tenant name -> tenant id, after the re-listing
        """
        by_name = index_by_name(self.tenants.list_tenants())
        for name in self.catalog.tenants:
            existing = by_name.get(name.lower())
            if existing and existing.get("tenantId"):
                continue
            tenant_id = self.tenants.create_tenant(name)
            by_name[name.lower()] = {"tenantId": tenant_id, "name": name, "tenantStatus": TENANT_ENABLED}
            self._result.created_tenants.append(name)

        # Re-list to pick up server-generated ids and the effective status.
        refreshed = self.tenants.list_tenants()
        desired = {name.lower() for name in self.catalog.tenants}
        for tenant in refreshed:
            name = tenant.get("name")
            if not tenant.get("tenantId") or not isinstance(name, str) or not name:
                continue
            if name.lower() in desired and tenant.get("tenantStatus") != TENANT_ENABLED:
                self.tenants.enable_tenant(tenant)
                self._result.enabled_tenants.append(name)

        return tenant_ids_by_name(refreshed)

    def reconcile_users(self, tenant_ids: Dict[str, str]) -> None:
        self._user_index = index_by_username(self.users.list_users())
        run_batches_strict(
            list(self.catalog.users),
            self.user_batch_size,
            lambda desired: self.ensure_user(desired, tenant_ids),
        )

    def ensure_user(self, desired: DesiredUser, tenant_ids: Dict[str, str]) -> Decision:
        tenant_id = tenant_ids.get(desired.tenant_name.lower())
        if not tenant_id:
            raise TenantNotFoundError(f'Missing tenantId for tenant "{desired.tenant_name}"')

        key = desired.username.lower()
        with self._lock:
            existing = self._user_index.get(key)
        decision = decide(existing, desired, tenant_id)

        if isinstance(decision, Converged):
            logger.debug("User '%s' already converged", desired.username)
            return decision
        if isinstance(decision, NeedsRecreate):
            logger.info("Recreating user '%s': %s", desired.username, "; ".join(decision.reasons))
            self.users.delete_user(decision.user_id, desired.username)
            with self._lock:
                self._user_index.pop(key, None)

        self._create_with_retry(desired, tenant_id)
        with self._lock:
            if isinstance(decision, NeedsRecreate):
                self._result.recreated_users.append(desired.username)
            else:
                self._result.created_users.append(desired.username)
        return decision

    def _create_with_retry(self, desired: DesiredUser, tenant_id: str) -> None:
        """Create a user, retrying while deletion or creation settles server-side.

        Between attempts the user list is fetched again; a user that shows up
        there counts as created. The error of the last attempt propagates.
        """
        for attempt in range(1, self.max_create_attempts + 1):
            try:
                self.users.create_user(desired, tenant_id)
                return
            except IdentityError as exc:
                if attempt == self.max_create_attempts:
                    raise
                logger.warning(
                    "Create attempt %d/%d for '%s' failed: %s",
                    attempt, self.max_create_attempts, desired.username, exc,
                )
                self.sleep(RETRY_BACKOFF_SECONDS * attempt)
                try:
                    latest = self.users.list_users()
                except IdentityError:
                    latest = []
                with self._lock:
                    self._user_index.update(index_by_username(latest))
                    if desired.username.lower() in self._user_index:
                        return


def ensure_tenants_and_users_exist(
    identity_api_url: str,
    username: str,
    password: str,
    catalog: Catalog = DEFAULT_CATALOG,
    timeout: float = REQUEST_TIMEOUT,
) -> ReconciliationResult:
    """Login as the privileged user and reconcile the catalog."""
    token = login_super_user(identity_api_url, username, password, timeout=timeout)
    client = IdentityClient(identity_api_url, token, timeout=timeout)
    try:
        return Reconciler(client, catalog).run()
    finally:
        client.close()
