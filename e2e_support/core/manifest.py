"""Setup manifest: names ensured by provisioning, consumed by teardown."""
from __future__ import annotations
import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from .identity.exceptions import ManifestError

MANIFEST_FILENAME = "multi-tenant-setup.json"


@dataclass
class Manifest:
    tenants: List[str] = field(default_factory=list)
    users: List[str] = field(default_factory=list)
    setup_complete: bool = True
    timestamp: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "setupComplete": self.setup_complete,
            "timestamp": self.timestamp if self.timestamp is not None else int(time.time() * 1000),
            "tenants": list(self.tenants),
            "users": list(self.users),
        }


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def write_manifest(path: Path, tenants: List[str], users: List[str]) -> Manifest:
    """Persist the ensured names, creating the auth directory when needed."""
    manifest = Manifest(tenants=list(tenants), users=list(users), timestamp=int(time.time() * 1000))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(manifest.to_dict()), encoding="utf-8")
    return manifest


def read_manifest(path: Path) -> Manifest:
    """Load a manifest.

    Raises:
        ManifestError: If the file cannot be read or is not a JSON object
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ManifestError(f"Invalid setup manifest {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ManifestError(f"Invalid setup manifest {path}: expected a JSON object")

    timestamp = raw.get("timestamp")
    return Manifest(
        tenants=_string_list(raw.get("tenants")),
        users=_string_list(raw.get("users")),
        setup_complete=bool(raw.get("setupComplete", False)),
        timestamp=timestamp if isinstance(timestamp, int) else None,
    )


def remove_manifest(path: Path) -> bool:
    """Delete the manifest; returns False when it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
