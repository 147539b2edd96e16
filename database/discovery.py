"""
Discovery configuration functions.

Resolves the driver configurations of an asset. Each configuration is
assembled from three layers:

1. the default attributes of its configuration type,
2. the attribute overrides stored for the configuration itself,
3. the credential documents (security wallet ids) it references.

Layers 1 and 2 are merged with the override winning on a shared key.
Configurations are returned by priority, lowest value first.
"""
import copy
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from config.constants import (
    CONFIG_ORDER_BY, LOGGER_NAME, REQUEST_WHERE_ALL_CONFIG, REQUEST_WHERE_CANDIDATE_CONFIG,
    T_CONFIG, T_CONFIG_ATTRIBUTE, T_CONFIG_DEFAULT_ATTRIBUTE, T_CONFIG_DOCUMENT,
    T_CONFIG_TYPE, T_CONFIG_TYPE_DOCUMENT_TYPE,
)
from core.errors import (
    ConfigurationNotFoundError, ConfigurationReadError, DatabaseError,
)
from database.db import (
    _query_to_df, execute, execute_many, fetch_all, fetch_one, get_asset_id, transaction,
)
from database.models import ConfigurationRecord, ConfigurationType, DeviceConfigurationInfo

logger = logging.getLogger(LOGGER_NAME)

# (configuration id, attributes) as produced by aggregate_config_rows
ConfigGroup = Tuple[int, Dict[str, str]]

DEFAULT_ATTRIBUTES_QUERY = f"""
    SELECT config.id_nut_configuration, conf_def_attr.keytag, conf_def_attr.value
    FROM {T_CONFIG} config
    INNER JOIN {T_CONFIG_DEFAULT_ATTRIBUTE} conf_def_attr
    ON conf_def_attr.id_nut_configuration_type = config.id_nut_configuration_type
"""

ASSET_ATTRIBUTES_QUERY = f"""
    SELECT config.id_nut_configuration, conf_attr.keytag, conf_attr.value
    FROM {T_CONFIG} config
    INNER JOIN {T_CONFIG_ATTRIBUTE} conf_attr
    ON conf_attr.id_nut_configuration = config.id_nut_configuration
"""


# ============================================
# ROW DECODING & GROUPING
# ============================================

def decode_config_row(row: Mapping) -> Tuple[int, str, str]:
    """Turn one attribute row into (configuration id, keytag, value)."""
    try:
        config_id = int(row["id_nut_configuration"])
        keytag = row["keytag"]
        value = row["value"]
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationReadError(f"malformed configuration row {row!r}: {e}") from e

    if not keytag:
        raise ConfigurationReadError(f"empty keytag in configuration {config_id}")
    return config_id, keytag, value


def aggregate_config_rows(rows: Iterable[Mapping]) -> List[ConfigGroup]:
    """
    Group attribute rows by configuration id.

    Rows of one configuration must be contiguous, which the queries of this
    module guarantee by ordering on (priority, configuration id). Groups keep
    the order in which they first appear. A configuration id showing up again
    after its group was closed raises ConfigurationReadError.
    """
    groups = []
    closed = set()
    current_id = None
    current = {}

    for row in rows:
        config_id, keytag, value = decode_config_row(row)
        if config_id != current_id:
            if config_id in closed:
                raise ConfigurationReadError(
                    f"rows of configuration {config_id} are not contiguous"
                )
            if current_id is not None:
                closed.add(current_id)
                if current:
                    groups.append((current_id, current))
            current_id = config_id
            current = {}
        current[keytag] = value

    if current_id is not None and current:
        groups.append((current_id, current))
    return groups


def merge_config_layers(defaults: Sequence[ConfigGroup], overrides: Sequence[ConfigGroup]) -> List[DeviceConfigurationInfo]:
    """
    Merge asset attribute overrides into default attributes.

    Every default group is copied into the result. An override group with a
    matching id is merged into it, the override value winning on a shared
    key; one without a match is appended as is.
    """
    result = [
        DeviceConfigurationInfo(config_id, copy.deepcopy(attributes))
        for config_id, attributes in defaults
    ]

    for config_id, attributes in overrides:
        merged = next((info for info in result if info.id == config_id), None)
        if merged is None:
            result.append(DeviceConfigurationInfo(config_id, copy.deepcopy(attributes)))
        else:
            merged.attributes.update(attributes)
    return result


# ============================================
# CREDENTIAL DOCUMENTS
# ============================================

def get_config_documents(conn, config_id: int) -> frozenset:
    """Ids of the credential documents referenced by a configuration"""
    rows = fetch_all(
        conn,
        f"""
        SELECT BIN_TO_UUID(id_secw_document) AS id_secw_document
        FROM {T_CONFIG_DOCUMENT}
        WHERE id_nut_configuration = %s
        """,
        (config_id,)
    )
    return frozenset(row["id_secw_document"] for row in rows)


def attach_config_documents(conn, configs: List[DeviceConfigurationInfo]) -> List[DeviceConfigurationInfo]:
    for info in configs:
        info.secw_document_ids = get_config_documents(conn, info.id)
    return configs


# ============================================
# CONFIGURATION QUERIES
# ============================================

def request_database_config_list(conn, request: str, asset_id: int) -> List[ConfigGroup]:
    """Run one attribute query for an asset and group its rows"""
    return aggregate_config_rows(fetch_all(conn, request, (asset_id,)))


def get_config_list_ex(conn, request_where: str, asset_name: str) -> List[DeviceConfigurationInfo]:
    """
    Get the merged configurations of an asset matching a WHERE condition.

    Args:
        conn: Database connection
        request_where: WHERE fragment taking the asset id as only parameter
        asset_name: Asset to get configurations for

    Returns:
        Configurations by priority, with credential documents attached
    """
    asset_id = get_asset_id(conn, asset_name)

    defaults = request_database_config_list(
        conn, DEFAULT_ATTRIBUTES_QUERY + request_where + CONFIG_ORDER_BY, asset_id
    )
    overrides = request_database_config_list(
        conn, ASSET_ATTRIBUTES_QUERY + request_where + CONFIG_ORDER_BY, asset_id
    )

    configs = merge_config_layers(defaults, overrides)
    attach_config_documents(conn, configs)
    logger.debug(f"{len(configs)} configuration(s) found for {asset_name}")
    return configs


def get_candidate_config_list(conn, asset_name: str) -> List[DeviceConfigurationInfo]:
    """All working and enabled configurations of an asset"""
    return get_config_list_ex(conn, REQUEST_WHERE_CANDIDATE_CONFIG, asset_name)


def get_all_config_list(conn, asset_name: str) -> List[DeviceConfigurationInfo]:
    return get_config_list_ex(conn, REQUEST_WHERE_ALL_CONFIG, asset_name)


CONFIGS_BY_ASSET_QUERY = f"""
    SELECT id_nut_configuration, id_nut_configuration_type, priority, is_working, is_enabled
    FROM {T_CONFIG}
    WHERE id_asset_element = %s
    ORDER BY priority ASC, id_nut_configuration
"""


def get_candidate_config(conn, asset_name: str) -> DeviceConfigurationInfo:
    """
    Candidate configuration of an asset with the lowest stored priority.

    Configurations without type defaults sit at the end of the merged list,
    so the stored priorities decide rather than the list position.
    """
    configs = get_candidate_config_list(conn, asset_name)
    if not configs:
        raise ConfigurationNotFoundError(
            f"no candidate configuration for asset {asset_name}", asset_name=asset_name
        )

    asset_id = get_asset_id(conn, asset_name)
    priorities = {
        int(row["id_nut_configuration"]): int(row["priority"])
        for row in fetch_all(conn, CONFIGS_BY_ASSET_QUERY, (asset_id,))
    }
    return min(configs, key=lambda info: priorities[info.id])


def _row_to_record(row: Mapping) -> ConfigurationRecord:
    return ConfigurationRecord(
        id=int(row["id_nut_configuration"]),
        type_id=int(row["id_nut_configuration_type"]),
        priority=int(row["priority"]),
        is_working=bool(row["is_working"]),
        is_enabled=bool(row["is_enabled"]),
    )


def get_asset_configs(conn, asset_name: str) -> List[ConfigurationRecord]:
    """Configuration rows of an asset, by priority"""
    asset_id = get_asset_id(conn, asset_name)
    return [_row_to_record(row) for row in fetch_all(conn, CONFIGS_BY_ASSET_QUERY, (asset_id,))]


def configs_frame(conn, asset_name: str) -> pd.DataFrame:
    """Configuration rows of an asset as a DataFrame, for reports"""
    asset_id = get_asset_id(conn, asset_name)
    return _query_to_df(CONFIGS_BY_ASSET_QUERY, conn, (asset_id,))


# ============================================
# WORKING / ENABLED FLAGS
# ============================================

def get_config_working(conn, config_id: int) -> bool:
    row = fetch_one(
        conn,
        f"SELECT is_working FROM {T_CONFIG} WHERE id_nut_configuration = %s",
        (config_id,)
    )
    if row is None:
        raise ConfigurationNotFoundError(f"configuration {config_id} not found", config_id=config_id)
    return bool(row["is_working"])


def set_config_working(conn, config_id: int, working_value: bool) -> None:
    execute(
        conn,
        f"UPDATE {T_CONFIG} SET is_working = %s WHERE id_nut_configuration = %s",
        (bool(working_value), config_id)
    )


def set_config_enabled(conn, config_id: int, enabled_value: bool) -> None:
    execute(
        conn,
        f"UPDATE {T_CONFIG} SET is_enabled = %s WHERE id_nut_configuration = %s",
        (bool(enabled_value), config_id)
    )


# ============================================
# PRIORITIES
# ============================================

def modify_config_priorities(conn, asset_name: str, config_ids: Sequence[int]) -> None:
    """
    Reorder the configurations of an asset.

    ``config_ids`` must list every configuration of the asset, highest
    priority first. Afterwards configuration ``config_ids[i]`` has priority
    ``i``. Nothing is written when the list does not match the stored set.

    Priorities are first moved above the current maximum, then shifted down,
    so no two configurations of the asset share a priority at any point.

    Raises:
        ConfigurationNotFoundError: an id is missing from the database or
            from the input list
        ValueError: an id is listed twice
    """
    config_ids = [int(config_id) for config_id in config_ids]
    if len(set(config_ids)) != len(config_ids):
        raise ValueError(f"duplicated configuration id in priority list for asset {asset_name}")

    with transaction(conn):
        asset_id = get_asset_id(conn, asset_name)
        stored = [_row_to_record(row) for row in fetch_all(conn, CONFIGS_BY_ASSET_QUERY, (asset_id,))]
        stored_ids = [record.id for record in stored]

        for config_id in config_ids:
            if config_id not in stored_ids:
                raise ConfigurationNotFoundError(
                    f"configuration {config_id} not found in database for asset {asset_name}",
                    config_id=config_id, asset_name=asset_name
                )
        for config_id in stored_ids:
            if config_id not in config_ids:
                raise ConfigurationNotFoundError(
                    f"configuration {config_id} not found in input list for asset {asset_name}",
                    config_id=config_id, asset_name=asset_name
                )
        if not stored:
            return

        offset = max(record.priority for record in stored) + 1
        execute_many(
            conn,
            f"UPDATE {T_CONFIG} SET priority = %s WHERE id_nut_configuration = %s",
            [(offset + index, config_id) for index, config_id in enumerate(config_ids)]
        )
        execute(
            conn,
            f"UPDATE {T_CONFIG} SET priority = priority - %s WHERE id_asset_element = %s",
            (offset, asset_id)
        )

    logger.info(f"Configuration priorities of {asset_name} set to {config_ids}")


# ============================================
# INSERT / REMOVE
# ============================================

def insert_config(
    conn,
    asset_name: str,
    config_type: int,
    is_working: bool,
    is_enabled: bool,
    secw_document_ids: Iterable[str] = (),
    attributes: Optional[Mapping[str, str]] = None
) -> int:
    """
    Create a configuration for an asset with the lowest priority.

    Credential document links and attribute overrides are written in the
    same transaction as the configuration row.

    Returns:
        The new configuration id
    """
    secw_document_ids = list(secw_document_ids)
    attributes = dict(attributes or {})

    with transaction(conn):
        asset_id = get_asset_id(conn, asset_name)
        row = fetch_one(
            conn,
            f"SELECT COALESCE(MAX(priority), -1) AS max_priority FROM {T_CONFIG} WHERE id_asset_element = %s",
            (asset_id,)
        )
        priority = int(row["max_priority"]) + 1

        config_id, _ = execute(
            conn,
            f"""
            INSERT INTO {T_CONFIG}
                (id_nut_configuration_type, id_asset_element, priority, is_enabled, is_working)
            VALUES (%s, %s, %s, %s, %s)
            """,
            (config_type, asset_id, priority, bool(is_enabled), bool(is_working))
        )
        if not config_id:
            raise DatabaseError(f"no configuration id returned for asset {asset_name}")

        execute_many(
            conn,
            f"""
            INSERT INTO {T_CONFIG_DOCUMENT} (id_nut_configuration, id_secw_document)
            VALUES (%s, UUID_TO_BIN(%s))
            """,
            [(config_id, document_id) for document_id in secw_document_ids]
        )
        # A new configuration has no attribute yet, keys cannot collide
        execute_many(
            conn,
            f"""
            INSERT INTO {T_CONFIG_ATTRIBUTE} (id_nut_configuration, keytag, value)
            VALUES (%s, %s, %s)
            """,
            [(config_id, keytag, value) for keytag, value in attributes.items()]
        )

    logger.info(f"Configuration {config_id} (type {config_type}) added to {asset_name} with priority {priority}")
    return int(config_id)


def remove_config(conn, config_id: int, cascade: bool = False) -> int:
    """
    Delete a configuration.

    Only the configuration row is deleted unless ``cascade`` is set, in which
    case its attribute overrides and document links go with it.

    Returns:
        Number of configuration rows deleted (0 or 1)
    """
    with transaction(conn):
        if cascade:
            execute(conn, f"DELETE FROM {T_CONFIG_ATTRIBUTE} WHERE id_nut_configuration = %s", (config_id,))
            execute(conn, f"DELETE FROM {T_CONFIG_DOCUMENT} WHERE id_nut_configuration = %s", (config_id,))
        _, deleted = execute(conn, f"DELETE FROM {T_CONFIG} WHERE id_nut_configuration = %s", (config_id,))

    if deleted:
        logger.info(f"Configuration {config_id} removed")
    else:
        logger.warning(f"Configuration {config_id} not found, nothing removed")
    return deleted


# ============================================
# CONFIGURATION TYPES
# ============================================

def get_config_types(conn) -> List[ConfigurationType]:
    """Read the configuration type catalog"""
    defaults = {}
    for row in fetch_all(conn, f"SELECT id_nut_configuration_type, keytag, value FROM {T_CONFIG_DEFAULT_ATTRIBUTE}"):
        defaults.setdefault(int(row["id_nut_configuration_type"]), {})[row["keytag"]] = row["value"]

    document_types = {}
    for row in fetch_all(conn, f"SELECT id_nut_configuration_type, id_secw_document_type FROM {T_CONFIG_TYPE_DOCUMENT_TYPE}"):
        document_types.setdefault(int(row["id_nut_configuration_type"]), set()).add(row["id_secw_document_type"])

    rows = fetch_all(
        conn,
        f"""
        SELECT id_nut_configuration_type, configuration_name, driver, port
        FROM {T_CONFIG_TYPE}
        ORDER BY id_nut_configuration_type
        """
    )
    return [
        ConfigurationType(
            id=int(row["id_nut_configuration_type"]),
            name=row["configuration_name"],
            driver=row["driver"],
            port=row["port"],
            default_attributes=defaults.get(int(row["id_nut_configuration_type"]), {}),
            secw_document_types=frozenset(document_types.get(int(row["id_nut_configuration_type"]), ())),
        )
        for row in rows
    ]


def get_config_type(conn, type_id: int) -> ConfigurationType:
    for config_type in get_config_types(conn):
        if config_type.id == type_id:
            return config_type
    raise ConfigurationNotFoundError(f"configuration type {type_id} not found")
