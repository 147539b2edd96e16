"""
Discovery configuration operations for callers that do not manage
connections themselves.

Each call borrows one pooled connection, runs the matching
``database.discovery`` function on it and gives the connection back.
"""
import logging
from typing import Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from config.constants import LOGGER_NAME
from core.errors import DiscoveryError, log_error
from database import discovery
from database.db import DatabaseConnection, get_asset_id
from database.models import ConfigurationRecord, ConfigurationType, DeviceConfigurationInfo

logger = logging.getLogger(LOGGER_NAME)


class DiscoveryService:
    def __init__(self, db: DatabaseConnection) -> None:
        self._db = db

    def _run(self, context: str, func, *args, **kwargs):
        with self._db.connection() as conn:
            try:
                return func(conn, *args, **kwargs)
            except DiscoveryError as e:
                log_error(e, context)
                raise

    def get_asset_id(self, asset_name: str) -> int:
        return self._run(f"get_asset_id {asset_name}", get_asset_id, asset_name)

    def get_candidate_config(self, asset_name: str) -> DeviceConfigurationInfo:
        return self._run(f"get_candidate_config {asset_name}", discovery.get_candidate_config, asset_name)

    def get_candidate_configs(self, asset_name: str) -> List[DeviceConfigurationInfo]:
        return self._run(f"get_candidate_configs {asset_name}", discovery.get_candidate_config_list, asset_name)

    def get_all_configs(self, asset_name: str) -> List[DeviceConfigurationInfo]:
        return self._run(f"get_all_configs {asset_name}", discovery.get_all_config_list, asset_name)

    def get_asset_configs(self, asset_name: str) -> List[ConfigurationRecord]:
        return self._run(f"get_asset_configs {asset_name}", discovery.get_asset_configs, asset_name)

    def configs_frame(self, asset_name: str) -> pd.DataFrame:
        return self._run(f"configs_frame {asset_name}", discovery.configs_frame, asset_name)

    def get_config_types(self) -> List[ConfigurationType]:
        return self._run("get_config_types", discovery.get_config_types)

    def get_config_working(self, config_id: int) -> bool:
        return self._run(f"get_config_working {config_id}", discovery.get_config_working, config_id)

    def set_config_working(self, config_id: int, working_value: bool) -> None:
        self._run(f"set_config_working {config_id}", discovery.set_config_working, config_id, working_value)
        logger.info(f"Configuration {config_id} working={working_value}")

    def set_config_enabled(self, config_id: int, enabled_value: bool) -> None:
        self._run(f"set_config_enabled {config_id}", discovery.set_config_enabled, config_id, enabled_value)
        logger.info(f"Configuration {config_id} enabled={enabled_value}")

    def modify_config_priorities(self, asset_name: str, config_ids: Sequence[int]) -> None:
        self._run(
            f"modify_config_priorities {asset_name}",
            discovery.modify_config_priorities, asset_name, config_ids
        )

    def insert_config(
        self,
        asset_name: str,
        config_type: int,
        is_working: bool = True,
        is_enabled: bool = True,
        secw_document_ids: Iterable[str] = (),
        attributes: Optional[Mapping[str, str]] = None
    ) -> int:
        return self._run(
            f"insert_config {asset_name}",
            discovery.insert_config, asset_name, config_type, is_working, is_enabled,
            secw_document_ids=secw_document_ids, attributes=attributes
        )

    def remove_config(self, config_id: int, cascade: bool = False) -> int:
        return self._run(f"remove_config {config_id}", discovery.remove_config, config_id, cascade=cascade)
