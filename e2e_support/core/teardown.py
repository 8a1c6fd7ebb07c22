"""
Multi-tenant test teardown.

Removes the users and tenants listed in the setup manifest. The sweep is
best-effort: a failing delete is logged and the sweep moves on. Only a
missing/unreadable manifest or a failed login stops it, and then nothing is
deleted.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from ..config.settings import E2EConfig
from .batching import run_batches
from .identity import (
    AuthHelper,
    IdentityClient,
    IdentityError,
    TenantService,
    UserService,
    describe_http_failure,
    tenant_ids_by_name,
)
from .manifest import Manifest, read_manifest, remove_manifest
from .identity.exceptions import ManifestError

logger = logging.getLogger(__name__)

USER_BATCH_SIZE = 4
TENANT_BATCH_SIZE = 3
LIST_BODY_PREVIEW = 200


@dataclass
class TeardownReport:
    deleted_users: List[str] = field(default_factory=list)
    failed_users: List[str] = field(default_factory=list)
    skipped_users: List[str] = field(default_factory=list)
    deleted_tenants: List[str] = field(default_factory=list)
    failed_tenants: List[str] = field(default_factory=list)
    skipped_tenants: List[str] = field(default_factory=list)
    manifest_removed: bool = False


def teardown(
    config: E2EConfig,
    auth_factory: Callable[..., AuthHelper] = AuthHelper,
) -> Optional[TeardownReport]:
    """Delete manifest users, then manifest tenants.

    Returns:
        Report of the sweep, or None when it was skipped or aborted
    """
    if not config.has_credentials:
        logger.info("Skipping cleanup: no credentials configured")
        return None

    manifest_path = config.manifest_path
    if not manifest_path.exists():
        logger.info("Skipping cleanup: no setup state found at %s", manifest_path)
        return None

    try:
        manifest = read_manifest(manifest_path)
    except ManifestError as exc:
        logger.warning("Skipping cleanup: %s", exc)
        return None

    logger.info("Starting multi-tenant cleanup...")
    try:
        auth = auth_factory(config.identity_api_url, timeout=config.http_timeout)
        auth.login_via_api(config.username, config.password)
        client = auth.create_authenticated_client(config.identity_api_url)
    except IdentityError as exc:
        logger.error("Cleanup failed: could not authenticate: %s", exc)
        return None

    try:
        report = TeardownSweep(client).run(manifest)
    finally:
        client.close()

    report.manifest_removed = remove_manifest(manifest_path)
    logger.info(
        "Multi-tenant cleanup complete: %d user(s), %d tenant(s) deleted",
        len(report.deleted_users), len(report.deleted_tenants),
    )
    return report


class TeardownSweep:
    """Delete the entities named in a manifest, tolerating per-entity failures."""

    def __init__(self, client: IdentityClient):
        self.tenants = TenantService(client)
        self.users = UserService(client)
        self.report = TeardownReport()

    def run(self, manifest: Manifest) -> TeardownReport:
        self.report = TeardownReport()
        tenant_ids = self._list_tenant_ids()
        user_ids = self._list_user_ids(manifest.tenants, tenant_ids)

        # Users first; tenants may refuse deletion while they still have members.
        run_batches(manifest.users, USER_BATCH_SIZE, lambda username: self._delete_user(username, user_ids))
        run_batches(manifest.tenants, TENANT_BATCH_SIZE, lambda name: self._delete_tenant(name, tenant_ids))
        return self.report

    def _list_tenant_ids(self) -> Dict[str, str]:
        try:
            return tenant_ids_by_name(self.tenants.list_tenants())
        except IdentityError as exc:
            logger.warning("Failed to list tenants for cleanup: %s", exc)
            return {}

    def _list_user_ids(self, tenant_names: List[str], tenant_ids: Dict[str, str]) -> Dict[str, str]:
        """Index username -> id over the manifest tenants (user listing is tenant-scoped)."""
        user_ids: Dict[str, str] = {}
        for tenant_name in tenant_names:
            tenant_id = tenant_ids.get(tenant_name.lower())
            if not tenant_id:
                continue
            try:
                users = self.users.list_users(tenant_id=tenant_id)
            except IdentityError as exc:
                logger.warning(
                    'Failed to list users for tenant "%s" (tenantId=%s): %s',
                    tenant_name, tenant_id, describe_http_failure(exc, LIST_BODY_PREVIEW),
                )
                continue
            for user in users:
                user_id, username = user.get("id"), user.get("username")
                if isinstance(user_id, str) and user_id and isinstance(username, str) and username:
                    user_ids[username.lower()] = user_id
        return user_ids

    def _delete_user(self, username: str, user_ids: Dict[str, str]) -> None:
        user_id = user_ids.get(username.lower())
        if not user_id:
            self.report.skipped_users.append(username)
            return
        logger.info("Deleting user: %s", username)
        try:
            self.users.delete_user(user_id, username)
        except IdentityError as exc:
            logger.warning("%s", exc)
            self.report.failed_users.append(username)
            return
        self.report.deleted_users.append(username)

    def _delete_tenant(self, name: str, tenant_ids: Dict[str, str]) -> None:
        tenant_id = tenant_ids.get(name.lower())
        if not tenant_id:
            self.report.skipped_tenants.append(name)
            return
        logger.info("Deleting tenant: %s", name)
        try:
            self.tenants.delete_tenant(tenant_id)
        except IdentityError as exc:
            logger.warning(
                'Failed to delete tenant "%s" (tenantId=%s): %s',
                name, tenant_id, describe_http_failure(exc, LIST_BODY_PREVIEW),
            )
            self.report.failed_tenants.append(name)
            return
        logger.info("Deleted tenant: %s", name)
        self.report.deleted_tenants.append(name)
