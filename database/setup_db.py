"""
Discovery Database Setup Script
Creates the configuration tables and seeds the configuration type catalog.

Usage:
    python -m database.setup_db

This script will:
1. Connect to MySQL with the configured credentials
2. Create the database if needed
3. Create the discovery configuration tables
4. Seed credential document types
"""
import logging
from typing import Iterable

import mysql.connector
from mysql.connector import Error

from config.constants import (
    LOGGER_NAME, SECW_DOCUMENT_TYPES,
    T_ASSET_ELEMENT, T_CONFIG, T_CONFIG_ATTRIBUTE, T_CONFIG_DEFAULT_ATTRIBUTE,
    T_CONFIG_DOCUMENT, T_CONFIG_TYPE, T_CONFIG_TYPE_DOCUMENT_TYPE, T_DOCUMENT, T_DOCUMENT_TYPE,
)
from core.errors import DatabaseError, handle_db_error, setup_logging
from database.config import build_db_config, validate_db_config
from database.db import execute_many, fetch_all, transaction
from database.models import ConfigurationType

logger = logging.getLogger(LOGGER_NAME)

# Creation order follows foreign keys
TABLES_SQL = [
    f"""
    CREATE TABLE IF NOT EXISTS {T_ASSET_ELEMENT} (
        id_asset_element INT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
        name VARCHAR(50) NOT NULL,
        UNIQUE KEY UI_t_bios_asset_element_NAME (name)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_DOCUMENT_TYPE} (
        id_secw_document_type VARCHAR(50) NOT NULL PRIMARY KEY
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_DOCUMENT} (
        id_secw_document BINARY(16) NOT NULL PRIMARY KEY,
        id_secw_document_type VARCHAR(50) NOT NULL,
        FOREIGN KEY (id_secw_document_type) REFERENCES {T_DOCUMENT_TYPE}(id_secw_document_type)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_CONFIG_TYPE} (
        id_nut_configuration_type INT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
        configuration_name VARCHAR(255) NOT NULL,
        driver VARCHAR(255) NOT NULL,
        port VARCHAR(255) NOT NULL,
        UNIQUE KEY UI_nut_configuration_type_NAME (configuration_name)
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_CONFIG} (
        id_nut_configuration INT UNSIGNED AUTO_INCREMENT PRIMARY KEY,
        id_nut_configuration_type INT UNSIGNED NOT NULL,
        id_asset_element INT UNSIGNED NOT NULL,
        priority INT NOT NULL DEFAULT 0,
        is_enabled BOOLEAN NOT NULL DEFAULT TRUE,
        is_working BOOLEAN NOT NULL DEFAULT TRUE,
        UNIQUE KEY UI_nut_configuration_ASSET_PRIORITY (id_asset_element, priority),
        FOREIGN KEY (id_nut_configuration_type) REFERENCES {T_CONFIG_TYPE}(id_nut_configuration_type),
        FOREIGN KEY (id_asset_element) REFERENCES {T_ASSET_ELEMENT}(id_asset_element) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_CONFIG_ATTRIBUTE} (
        id_nut_configuration INT UNSIGNED NOT NULL,
        keytag VARCHAR(255) NOT NULL,
        value VARCHAR(255) NOT NULL,
        PRIMARY KEY (id_nut_configuration, keytag),
        FOREIGN KEY (id_nut_configuration) REFERENCES {T_CONFIG}(id_nut_configuration) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_CONFIG_DEFAULT_ATTRIBUTE} (
        id_nut_configuration_type INT UNSIGNED NOT NULL,
        keytag VARCHAR(255) NOT NULL,
        value VARCHAR(255) NOT NULL,
        PRIMARY KEY (id_nut_configuration_type, keytag),
        FOREIGN KEY (id_nut_configuration_type) REFERENCES {T_CONFIG_TYPE}(id_nut_configuration_type) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_CONFIG_DOCUMENT} (
        id_nut_configuration INT UNSIGNED NOT NULL,
        id_secw_document BINARY(16) NOT NULL,
        PRIMARY KEY (id_nut_configuration, id_secw_document),
        FOREIGN KEY (id_nut_configuration) REFERENCES {T_CONFIG}(id_nut_configuration) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {T_CONFIG_TYPE_DOCUMENT_TYPE} (
        id_nut_configuration_type INT UNSIGNED NOT NULL,
        id_secw_document_type VARCHAR(50) NOT NULL,
        PRIMARY KEY (id_nut_configuration_type, id_secw_document_type),
        FOREIGN KEY (id_nut_configuration_type) REFERENCES {T_CONFIG_TYPE}(id_nut_configuration_type) ON DELETE CASCADE,
        FOREIGN KEY (id_secw_document_type) REFERENCES {T_DOCUMENT_TYPE}(id_secw_document_type) ON DELETE CASCADE
    ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4
    """,
]


def create_database(cursor, database: str):
    """Create the database and make it current"""
    cursor.execute(f"CREATE DATABASE IF NOT EXISTS {database} CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
    cursor.execute(f"USE {database}")
    logger.info(f"Database {database} ready")


def create_tables(cursor) -> int:
    """Create all discovery tables; returns the number of statements run"""
    for statement in TABLES_SQL:
        cursor.execute(statement)
    logger.info(f"{len(TABLES_SQL)} discovery tables ready")
    return len(TABLES_SQL)


def seed_document_types(conn, document_types: Iterable[str] = SECW_DOCUMENT_TYPES) -> int:
    """Insert the credential document types not present yet"""
    with transaction(conn):
        existing = {
            row["id_secw_document_type"]
            for row in fetch_all(conn, f"SELECT id_secw_document_type FROM {T_DOCUMENT_TYPE}")
        }
        return execute_many(
            conn,
            f"INSERT INTO {T_DOCUMENT_TYPE} (id_secw_document_type) VALUES (%s)",
            [(document_type,) for document_type in document_types if document_type not in existing]
        )


def seed_config_types(conn, config_types: Iterable[ConfigurationType]) -> int:
    """
    Write configuration types with their default attributes and required
    credential document types. The document types must already exist.

    Returns:
        Number of configuration types written
    """
    config_types = list(config_types)
    with transaction(conn):
        execute_many(
            conn,
            f"""
            INSERT INTO {T_CONFIG_TYPE} (id_nut_configuration_type, configuration_name, driver, port)
            VALUES (%s, %s, %s, %s)
            """,
            [(t.id, t.name, t.driver, t.port) for t in config_types]
        )
        execute_many(
            conn,
            f"""
            INSERT INTO {T_CONFIG_DEFAULT_ATTRIBUTE} (id_nut_configuration_type, keytag, value)
            VALUES (%s, %s, %s)
            """,
            [(t.id, keytag, value) for t in config_types for keytag, value in t.default_attributes.items()]
        )
        execute_many(
            conn,
            f"""
            INSERT INTO {T_CONFIG_TYPE_DOCUMENT_TYPE} (id_nut_configuration_type, id_secw_document_type)
            VALUES (%s, %s)
            """,
            [(t.id, document_type) for t in config_types for document_type in sorted(t.secw_document_types)]
        )
    logger.info(f"{len(config_types)} configuration types seeded")
    return len(config_types)


def main():
    """Main setup function"""
    setup_logging()
    config = build_db_config()

    validation = validate_db_config(config)
    if not validation["valid"]:
        print("\nInvalid database configuration:")
        for issue in validation["issues"]:
            print(f"- {issue}")
        return False

    database = config["database"]
    connect_args = {k: v for k, v in config.items()
                    if k not in ['pool_name', 'pool_size', 'database']}

    try:
        print(f"\nConnecting to MySQL at {config['host']}:{config['port']}...")
        conn = mysql.connector.connect(**connect_args)

        cursor = conn.cursor()
        create_database(cursor, database)
        tables_created = create_tables(cursor)
        cursor.close()
        print(f"   {tables_created} tables ready in {database}")

        seeded = seed_document_types(conn)
        print(f"   {seeded} credential document types seeded")

        conn.close()
        print("\nDATABASE SETUP COMPLETE")

    except (Error, DatabaseError) as e:
        _, message, _ = handle_db_error(e, "setup_db")
        print(f"\nError: {message}")
        print("\nTroubleshooting:")
        print("- Make sure MySQL is running")
        print("- Check DB_USER / DB_PASSWD or the credentials file")
        return False

    return True


if __name__ == "__main__":
    main()
