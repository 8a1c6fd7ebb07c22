"""The session fixtures run setup once and the sweep at session end."""
import pathlib

import pytest

from e2e_support.core.reconciler import ReconciliationResult
from e2e_support.testing import fixtures

INNER_TESTS = """
    def test_one(provisioned_tenants):
        assert provisioned_tenants.tenants == ["e2e-TenantA"]

    def test_two(project_accounts):
        admin, user = project_accounts
        assert admin.tenant_name == user.tenant_name == "e2e-TenantC"
"""


@pytest.fixture
def calls(monkeypatch, pytester):
    recorded = []

    def fake_provision(config):
        recorded.append(("setup", config))
        return ReconciliationResult(tenants=["e2e-TenantA"])

    monkeypatch.setattr(fixtures, "load_settings", lambda: "cfg")
    monkeypatch.setattr(fixtures, "provision", fake_provision)
    monkeypatch.setattr(fixtures, "teardown", lambda config: recorded.append(("teardown", config)))
    monkeypatch.setenv("E2E_PROJECT", "firefox")
    monkeypatch.delenv("E2E_TEARDOWN", raising=False)
    pytester.makeconftest('pytest_plugins = ["e2e_support.testing.fixtures"]')
    pytester.makepyfile(INNER_TESTS)
    return recorded


def test_setup_once_and_teardown_at_session_end(pytester, calls):
    result = pytester.runpytest()
    result.assert_outcomes(passed=2)
    assert calls == [("setup", "cfg"), ("teardown", "cfg")]


def test_teardown_can_be_disabled(pytester, calls, monkeypatch):
    monkeypatch.setenv("E2E_TEARDOWN", "false")
    result = pytester.runpytest()
    result.assert_outcomes(passed=2)
    assert calls == [("setup", "cfg")]


def test_skipped_setup_skips_dependent_tests(pytester, calls, monkeypatch):
    monkeypatch.setattr(fixtures, "provision", lambda config: None)
    result = pytester.runpytest()
    result.assert_outcomes(skipped=2)
    assert calls == []


def test_plugin_extra_declares_pytest():
    pyproject = (pathlib.Path(__file__).resolve().parents[2] / "pyproject.toml").read_text()
    extra = pyproject.split("plugin = [", 1)[1].split("]", 1)[0]
    assert '"pytest' in extra
