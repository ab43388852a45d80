"""Configuration management module for the board service."""

from .config_manager import ConfigManager, StorageConfig, SubscriptionConfig, LoggingConfig

__all__ = ['ConfigManager', 'StorageConfig', 'SubscriptionConfig', 'LoggingConfig']
