"""Desired-state catalog of e2e tenants and users.

Provisioning creates these records; tests log in with them. The catalog is
immutable and passed explicitly to the reconciler.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Tuple

DEFAULT_PASSWORD = "TestPass123!"
EMAIL_DOMAIN = "test.local"


@dataclass(frozen=True)
class DesiredUser:
    """A user that must exist, with its tenant membership and roles."""
    username: str
    email: str
    password: str
    first_name: str
    last_name: str
    tenant_name: str
    roles: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Catalog:
    """Tenants and users the e2e suite relies on."""
    tenants: Tuple[str, ...]
    users: Tuple[DesiredUser, ...] = field(default_factory=tuple)

    @property
    def usernames(self) -> Tuple[str, ...]:
        return tuple(user.username for user in self.users)


TEST_TENANTS: Dict[str, str] = {
    "TENANT_A": "e2e-TenantA",
    "TENANT_B": "e2e-TenantB",
    "TENANT_C": "e2e-TenantC",
}


def _tenant_user(letter: str, kind: str) -> DesiredUser:
    username = f"e2e-tenant{letter}-{kind}"
    return DesiredUser(
        username=username,
        email=f"{username}@{EMAIL_DOMAIN}",
        password=DEFAULT_PASSWORD,
        first_name=f"Tenant{letter}",
        last_name=kind.capitalize(),
        tenant_name=TEST_TENANTS[f"TENANT_{letter}"],
        roles=(kind,),
    )


TEST_USERS: Dict[str, DesiredUser] = {
    f"TENANT_{letter}_{kind.upper()}": _tenant_user(letter, kind)
    for letter in ("A", "B", "C")
    for kind in ("admin", "user")
}

DEFAULT_CATALOG = Catalog(
    tenants=tuple(TEST_TENANTS.values()),
    users=tuple(TEST_USERS.values()),
)


def project_users(project_name: str) -> Tuple[DesiredUser, DesiredUser]:
    """Return the (admin, user) accounts a browser project logs in with.

    Projects are spread over tenants so parallel browsers never share data:
    mobile projects use tenant B, firefox tenant C, everything else tenant A.
    """
    name = (project_name or "").lower()
    if "mobile" in name:
        return TEST_USERS["TENANT_B_ADMIN"], TEST_USERS["TENANT_B_USER"]
    if "firefox" in name:
        return TEST_USERS["TENANT_C_ADMIN"], TEST_USERS["TENANT_C_USER"]
    return TEST_USERS["TENANT_A_ADMIN"], TEST_USERS["TENANT_A_USER"]
