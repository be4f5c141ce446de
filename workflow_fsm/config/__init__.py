"""Configuration management."""

from workflow_fsm.config.settings import Environment, Settings, StorageBackend, get_settings

__all__ = ["Environment", "Settings", "StorageBackend", "get_settings"]
