"""Settings loader with environment variable, .env.local and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..core.manifest import MANIFEST_FILENAME

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
SECRETS_DIR = Path("/run/secrets")

DEFAULT_BASE_URL = "http://localhost:8082"
DEFAULT_IDENTITY_API_URL = "http://localhost:5002"
DEFAULT_QUESTIONER_API_URL = "http://localhost:5004"
DEFAULT_ONLINE_MENU_API_URL = "http://localhost:5006"
DEFAULT_NOTIFICATION_API_URL = "http://localhost:5008"
DEFAULT_HTTP_TIMEOUT = 30.0


def normalize_base_url(url: str) -> str:
    return url.strip().rstrip("/")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.debug("Loaded %s from %s", secret_name, SECRETS_DIR)
                return secret_value
        except OSError as e:
            logger.warning("Failed to read %s/%s: %s", SECRETS_DIR, secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _url_from_env(var_name: str, default: str) -> str:
    value = os.environ.get(var_name, "")
    return normalize_base_url(value) if value.strip() else default


@dataclass
class E2EConfig:
    """Configuration of the e2e provisioning and teardown flow."""
    base_url: str = DEFAULT_BASE_URL
    identity_api_url: str = DEFAULT_IDENTITY_API_URL
    questioner_api_url: str = DEFAULT_QUESTIONER_API_URL
    online_menu_api_url: str = DEFAULT_ONLINE_MENU_API_URL
    notification_api_url: str = DEFAULT_NOTIFICATION_API_URL

    # Privileged account used for provisioning and teardown
    username: Optional[str] = None
    password: Optional[str] = None

    auth_dir: Path = PROJECT_ROOT / "playwright" / ".auth"
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @property
    def has_credentials(self) -> bool:
        return bool(self.username) and bool(self.password)

    @property
    def manifest_path(self) -> Path:
        return self.auth_dir / MANIFEST_FILENAME


def load_settings(env_file: Optional[Path] = None) -> E2EConfig:
    """Load settings from .env.local, /run/secrets and the environment.

    Variables already present in the environment win over .env.local.
    """
    env_path = env_file if env_file is not None else PROJECT_ROOT / ".env.local"
    if env_path.exists():
        load_dotenv(env_path, override=False)

    timeout_raw = os.environ.get("E2E_HTTP_TIMEOUT", "")
    try:
        http_timeout = float(timeout_raw) if timeout_raw.strip() else DEFAULT_HTTP_TIMEOUT
    except ValueError:
        logger.warning("Ignoring invalid E2E_HTTP_TIMEOUT=%r", timeout_raw)
        http_timeout = DEFAULT_HTTP_TIMEOUT

    auth_dir_raw = os.environ.get("E2E_AUTH_DIR", "").strip()
    auth_dir = Path(auth_dir_raw) if auth_dir_raw else PROJECT_ROOT / "playwright" / ".auth"

    config = E2EConfig(
        base_url=_url_from_env("BASE_URL", DEFAULT_BASE_URL),
        identity_api_url=_url_from_env("IDENTITY_API_URL", DEFAULT_IDENTITY_API_URL),
        questioner_api_url=_url_from_env("QUESTIONER_API_URL", DEFAULT_QUESTIONER_API_URL),
        online_menu_api_url=_url_from_env("ONLINE_MENU_API_URL", DEFAULT_ONLINE_MENU_API_URL),
        notification_api_url=_url_from_env("NOTIFICATION_API_URL", DEFAULT_NOTIFICATION_API_URL),
        username=_load_secret_from_file("test_user_username", "TEST_USER_USERNAME"),
        password=_load_secret_from_file("test_user_password", "TEST_USER_PASSWORD"),
        auth_dir=auth_dir,
        http_timeout=http_timeout,
    )

    logger.info(
        "Identity=%s; frontend=%s; credentials=%s",
        config.identity_api_url,
        config.base_url,
        "set" if config.has_credentials else "MISSING",
    )
    return config
