"""Configuration package."""
from .settings import E2EConfig, load_settings

__all__ = ["E2EConfig", "load_settings"]
