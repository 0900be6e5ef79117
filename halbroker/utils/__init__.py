"""
Utility modules for the broker client
"""
from .config_loader import BrokerConfig, apply_env_overrides, load_broker_config

__all__ = [
    'BrokerConfig',
    'apply_env_overrides',
    'load_broker_config',
]
