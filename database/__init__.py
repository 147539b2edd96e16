"""
Database Package
Provides MySQL connectivity and the discovery configuration queries
"""
from .config import build_db_config, read_credentials, validate_db_config
from .db import (
    DatabaseConnection,
    get_asset_id,
    transaction,
)
from .discovery import (
    get_all_config_list,
    get_asset_configs,
    get_candidate_config,
    get_candidate_config_list,
    get_config_types,
    get_config_working,
    insert_config,
    modify_config_priorities,
    remove_config,
    set_config_enabled,
    set_config_working,
)
from .models import ConfigurationRecord, ConfigurationType, DeviceConfigurationInfo

__all__ = [
    'build_db_config',
    'read_credentials',
    'validate_db_config',
    'DatabaseConnection',
    'get_asset_id',
    'transaction',
    'get_all_config_list',
    'get_asset_configs',
    'get_candidate_config',
    'get_candidate_config_list',
    'get_config_types',
    'get_config_working',
    'insert_config',
    'modify_config_priorities',
    'remove_config',
    'set_config_enabled',
    'set_config_working',
    'ConfigurationRecord',
    'ConfigurationType',
    'DeviceConfigurationInfo',
]
