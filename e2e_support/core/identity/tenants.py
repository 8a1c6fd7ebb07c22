"""Identity service tenant operations."""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional

from .client import IdentityClient, json_or_empty

logger = logging.getLogger(__name__)

TENANT_ENABLED = 1

# Values the Identity service applies when a tenant field was never set.
TENANT_UPDATE_DEFAULTS: Dict[str, Any] = {
    "logoUrl": None,
    "primaryColor": None,
    "primaryAuthMethod": 0,
    "allowPhoneAuth": False,
    "allowEmailAuth": False,
    "otpCodeLength": 6,
    "otpExpiryMinutes": 5,
    "smsProvider": None,
    "requireSmsVerification": True,
}


def _non_blank(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0


def index_by_name(tenants: Iterable[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Map lowercase tenant name to tenant record, skipping unnamed records."""
    index: Dict[str, Dict[str, Any]] = {}
    for tenant in tenants:
        name = tenant.get("name")
        if _non_blank(name):
            index[name.lower()] = tenant
    return index


def tenant_ids_by_name(tenants: Iterable[Dict[str, Any]]) -> Dict[str, str]:
    """Map lowercase tenant name to server-assigned id, skipping incomplete records."""
    return {
        name: tenant["tenantId"]
        for name, tenant in index_by_name(tenants).items()
        if _non_blank(tenant.get("tenantId"))
    }


def full_update_payload(tenant: Dict[str, Any], full: Dict[str, Any]) -> Dict[str, Any]:
    """Build the PUT body for an enable: every field re-sent, status forced on.

    ``tenant`` is the listing entry, ``full`` the detailed record. The update
    endpoint replaces the whole record, so missing fields fall back to the
    service defaults instead of being dropped.
    """
    payload: Dict[str, Any] = {
        "tenantId": tenant["tenantId"],
        "name": full.get("name") if full.get("name") is not None else tenant.get("name"),
        "tenantStatus": TENANT_ENABLED,
    }
    for field, default in TENANT_UPDATE_DEFAULTS.items():
        value = full.get(field)
        payload[field] = default if value is None else value
    return payload


class TenantService:
    """Service for managing Identity tenants."""

    def __init__(self, client: IdentityClient):
        """Initialize tenant service.

        Args:
            client: Authenticated Identity client
        """
        self.client = client

    def list_tenants(self) -> List[Dict[str, Any]]:
        data = json_or_empty(self.client.get("tenants"))
        tenants = data.get("tenants") if isinstance(data, dict) else None
        return tenants if isinstance(tenants, list) else []

    def get_tenant(self, tenant_id: str) -> Dict[str, Any]:
        data = json_or_empty(self.client.get(f"tenants/{tenant_id}"))
        return data if isinstance(data, dict) else {}

    def create_tenant(self, name: str) -> Optional[str]:
        """Create an enabled tenant.

        Returns:
            Server-assigned tenant id (may be None if the service omits it)
        """
        data = json_or_empty(self.client.post("tenants", json={"name": name, "tenantStatus": TENANT_ENABLED}))
        tenant_id = data.get("tenantId") if isinstance(data, dict) else None
        logger.info("Created tenant '%s' (tenantId=%s)", name, tenant_id)
        return tenant_id

    def enable_tenant(self, tenant: Dict[str, Any]) -> None:
        """Re-enable a tenant through a full-record update."""
        full = self.get_tenant(tenant["tenantId"])
        self.client.put("tenants", json=full_update_payload(tenant, full))
        logger.info("Enabled tenant '%s' (tenantId=%s)", tenant.get("name"), tenant["tenantId"])

    def delete_tenant(self, tenant_id: str) -> None:
        self.client.delete(f"tenants/{tenant_id}")
