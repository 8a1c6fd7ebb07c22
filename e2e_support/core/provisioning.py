"""Setup entry point: probe the Identity service, reconcile, record the manifest."""
from __future__ import annotations
import logging
from typing import Optional

from ..config.settings import E2EConfig
from .availability import is_service_available
from .catalog import Catalog, DEFAULT_CATALOG
from .identity import IdentityError
from .manifest import write_manifest
from .reconciler import ReconciliationResult, ensure_tenants_and_users_exist

logger = logging.getLogger(__name__)


def provision(config: E2EConfig, catalog: Catalog = DEFAULT_CATALOG) -> Optional[ReconciliationResult]:
    """Ensure the e2e tenants and users exist and write the setup manifest.

    Returns None (after logging why) when credentials are missing or the
    Identity service is unreachable; tests needing the data skip then.

    Raises:
        IdentityError: When reconciliation itself fails
    """
    if not config.has_credentials:
        logger.warning("TEST_USER_USERNAME or TEST_USER_PASSWORD not set; tests requiring tenants will be skipped")
        return None

    if not is_service_available(config.identity_api_url):
        logger.warning("IdentityService is not available at %s; skipping multi-tenant setup", config.identity_api_url)
        return None

    logger.info("Starting multi-tenant test setup...")
    try:
        result = ensure_tenants_and_users_exist(
            config.identity_api_url, config.username, config.password, catalog,
            timeout=config.http_timeout,
        )
    except IdentityError as exc:
        logger.error("MULTI-TENANT SETUP FAILED: %s", exc)
        raise

    write_manifest(config.manifest_path, result.tenants, result.users)
    logger.info(
        "Multi-tenant setup complete (created tenants=%s, enabled=%s, created users=%s, recreated=%s)",
        result.created_tenants, result.enabled_tenants, result.created_users, result.recreated_users,
    )
    return result
