"""
Pytest fixtures that provision the e2e tenants once per session.

Requires pytest, which is not a runtime dependency of the package; install
the ``plugin`` extra (``pip install saas-e2e-provisioning[plugin]``).

Enable in a conftest.py:

    pytest_plugins = ["e2e_support.testing.fixtures"]

Tests that need the multi-tenant data request ``provisioned_tenants`` (or
``project_accounts``); they are skipped when no privileged credentials are
configured or the Identity service is down.
"""
import logging
import os

import pytest

from e2e_support.config.settings import load_settings
from e2e_support.core.catalog import project_users
from e2e_support.core.provisioning import provision
from e2e_support.core.teardown import teardown

logger = logging.getLogger(__name__)


@pytest.fixture(scope="session")
def e2e_config():
    return load_settings()


@pytest.fixture(scope="session")
def provisioned_tenants(e2e_config):
    """Reconcile the catalog before the session, sweep it afterwards.

    Set E2E_TEARDOWN=false to keep the data for debugging.
    """
    result = provision(e2e_config)
    if result is None:
        pytest.skip("Multi-tenant setup skipped (credentials or IdentityService missing)")
    yield result
    if os.environ.get("E2E_TEARDOWN", "true").lower() != "false":
        teardown(e2e_config)
    else:
        logger.info("E2E_TEARDOWN=false; leaving %s in place", e2e_config.manifest_path)


@pytest.fixture()
def project_accounts(provisioned_tenants):
    """(admin, user) accounts for the browser project named by E2E_PROJECT."""
    return project_users(os.environ.get("E2E_PROJECT", "chromium"))
