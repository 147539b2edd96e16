import sqlite3

import mysql.connector
import pytest

from database.db import DatabaseConnection
from database.models import ConfigurationType
from database.setup_db import seed_config_types, seed_document_types

# Same tables as database.setup_db, in SQLite dialect
SQLITE_SCHEMA = """
CREATE TABLE t_bios_asset_element (
    id_asset_element INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);
CREATE TABLE t_bios_secw_document_type (
    id_secw_document_type TEXT NOT NULL PRIMARY KEY
);
CREATE TABLE t_bios_secw_document (
    id_secw_document TEXT NOT NULL PRIMARY KEY,
    id_secw_document_type TEXT NOT NULL
);
CREATE TABLE t_bios_nut_configuration_type (
    id_nut_configuration_type INTEGER PRIMARY KEY AUTOINCREMENT,
    configuration_name TEXT NOT NULL UNIQUE,
    driver TEXT NOT NULL,
    port TEXT NOT NULL
);
CREATE TABLE t_bios_nut_configuration (
    id_nut_configuration INTEGER PRIMARY KEY AUTOINCREMENT,
    id_nut_configuration_type INTEGER NOT NULL,
    id_asset_element INTEGER NOT NULL,
    priority INTEGER NOT NULL DEFAULT 0,
    is_enabled BOOLEAN NOT NULL DEFAULT TRUE,
    is_working BOOLEAN NOT NULL DEFAULT TRUE,
    UNIQUE (id_asset_element, priority)
);
CREATE TABLE t_bios_nut_configuration_attribute (
    id_nut_configuration INTEGER NOT NULL,
    keytag TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (id_nut_configuration, keytag)
);
CREATE TABLE t_bios_nut_configuration_default_attribute (
    id_nut_configuration_type INTEGER NOT NULL,
    keytag TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (id_nut_configuration_type, keytag)
);
CREATE TABLE t_bios_nut_configuration_secw_document (
    id_nut_configuration INTEGER NOT NULL,
    id_secw_document TEXT NOT NULL,
    PRIMARY KEY (id_nut_configuration, id_secw_document)
);
CREATE TABLE t_bios_nut_configuration_type_secw_document_type_requirements (
    id_nut_configuration_type INTEGER NOT NULL,
    id_secw_document_type TEXT NOT NULL,
    PRIMARY KEY (id_nut_configuration_type, id_secw_document_type)
);
"""

SNMPV1_DOC_1 = "11111111-1111-1111-1111-000000000001"
SNMPV1_DOC_2 = "11111111-1111-1111-1111-000000000002"
SNMPV3_DOC_1 = "22222222-2222-2222-2222-000000000001"
SNMPV3_DOC_2 = "22222222-2222-2222-2222-000000000002"
USER_DOC_1 = "33333333-3333-3333-3333-000000000001"
USER_DOC_2 = "33333333-3333-3333-3333-000000000002"

CONFIG_TYPES = [
    ConfigurationType(
        1, "Driver snmpv1 ups", "snmp-ups", "{asset.ip.1}:{asset.port.snmpv1:161}",
        {"mibs": "eaton_ups", "pollfreq": "10", "snmp_retries": "100", "snmp_version": "v1"},
        frozenset({"Snmpv1"}),
    ),
    ConfigurationType(
        2, "Driver snmpv3 ups", "snmp-ups", "{asset.ip.1}:{asset.port.snmpv3:161}",
        {"mibs": "eaton_ups", "pollfreq": "20", "snmp_version": "v3"},
        frozenset({"Snmpv3"}),
    ),
    ConfigurationType(
        3, "Driver xmlv3 http ups", "xmlv3-ups", "http://{asset.ip.1}:{asset.port.http:80}",
        {"protocol": "{asset.protocol.http:http}", "pollfreq": "30", "snmp_retries": "300"},
        frozenset({"UserAndPassword"}),
    ),
    ConfigurationType(4, "Driver xmlv3 https ups", "xmlv3-ups", "https://{asset.ip.1}:{asset.port.http:443}"),
]

# (id, type, asset, priority, is_enabled, is_working)
CONFIGURATIONS = [
    (1, 1, "ups-1", 2, True, True),
    (2, 2, "ups-1", 1, True, True),
    (3, 3, "ups-1", 0, False, True),
    (4, 1, "ups-2", 0, False, True),
    (5, 2, "ups-2", 1, True, True),
    (6, 3, "ups-2", 2, False, True),
    (7, 1, "ups-3", 0, False, True),
    (8, 2, "ups-3", 1, False, True),
    (9, 3, "ups-3", 2, True, True),
]

CONFIG_DOCUMENTS = [
    (1, SNMPV1_DOC_1),
    (1, SNMPV1_DOC_2),
    (2, SNMPV3_DOC_1),
    (5, SNMPV3_DOC_2),
    (9, USER_DOC_1),
    (9, USER_DOC_2),
]

CONFIG_ATTRIBUTES = [
    (1, "snmp_retries", "101"),
    (1, "pollfreq", "11"),
    (1, "synchronous", "yes"),
    (2, "snmp_retries", "201"),
    (2, "pollfreq", "21"),
    (2, "synchronous", "yes"),
    (5, "snmp_retries", "501"),
    (5, "pollfreq", "51"),
    (5, "synchronous", "yes"),
    (9, "snmp_retries", "901"),
    (9, "pollfreq", "91"),
    (9, "synchronous", "no"),
]


class SqliteCursor:
    """Cursor speaking the mysql.connector parameter style (%s)."""

    def __init__(self, conn, dictionary):
        self._cursor = conn.cursor()
        self._dictionary = dictionary

    def execute(self, query, params=()):
        try:
            self._cursor.execute(query.replace("%s", "?"), tuple(params))
        except sqlite3.Error as e:
            raise mysql.connector.Error(msg=str(e)) from e

    def executemany(self, query, seq_params):
        try:
            self._cursor.executemany(query.replace("%s", "?"), [tuple(p) for p in seq_params])
        except sqlite3.Error as e:
            raise mysql.connector.Error(msg=str(e)) from e

    def fetchall(self):
        rows = self._cursor.fetchall()
        if not self._dictionary:
            return rows
        names = [column[0] for column in self._cursor.description]
        return [dict(zip(names, row)) for row in rows]

    @property
    def lastrowid(self):
        return self._cursor.lastrowid

    @property
    def rowcount(self):
        return self._cursor.rowcount

    def close(self):
        self._cursor.close()


class SqliteConnection:
    """In-memory SQLite database behind the subset of the
    mysql.connector connection API used by the database package."""

    def __init__(self):
        self._conn = sqlite3.connect(":memory:", isolation_level=None)
        # Document ids stay text in SQLite
        self._conn.create_function("UUID_TO_BIN", 1, lambda value: value)
        self._conn.create_function("BIN_TO_UUID", 1, lambda value: value)
        self._conn.executescript(SQLITE_SCHEMA)
        self.close_count = 0

    def cursor(self, dictionary=False):
        return SqliteCursor(self._conn, dictionary)

    @property
    def in_transaction(self):
        return self._conn.in_transaction

    def start_transaction(self):
        self._conn.execute("BEGIN")

    def commit(self):
        if self._conn.in_transaction:
            self._conn.execute("COMMIT")

    def rollback(self):
        if self._conn.in_transaction:
            self._conn.execute("ROLLBACK")

    def close(self):
        # Pooled connections go back to the pool, the database stays
        self.close_count += 1

    def scalar(self, query, params=()):
        return self._conn.execute(query, params).fetchone()[0]

    def dispose(self):
        self._conn.close()


class FakePool:
    def __init__(self, conn):
        self._conn = conn

    def get_connection(self):
        return self._conn


def _seed(conn):
    for name in ("ups-1", "ups-2", "ups-3"):
        conn.cursor().execute("INSERT INTO t_bios_asset_element (name) VALUES (%s)", (name,))
    seed_document_types(conn)
    seed_config_types(conn, CONFIG_TYPES)

    cursor = conn.cursor()
    cursor.executemany(
        "INSERT INTO t_bios_secw_document (id_secw_document, id_secw_document_type) VALUES (%s, %s)",
        [
            (SNMPV1_DOC_1, "Snmpv1"), (SNMPV1_DOC_2, "Snmpv1"),
            (SNMPV3_DOC_1, "Snmpv3"), (SNMPV3_DOC_2, "Snmpv3"),
            (USER_DOC_1, "UserAndPassword"), (USER_DOC_2, "UserAndPassword"),
        ],
    )
    for config_id, type_id, asset_name, priority, is_enabled, is_working in CONFIGURATIONS:
        cursor.execute(
            """
            INSERT INTO t_bios_nut_configuration
                (id_nut_configuration, id_nut_configuration_type, id_asset_element, priority, is_enabled, is_working)
            SELECT %s, %s, id_asset_element, %s, %s, %s FROM t_bios_asset_element WHERE name = %s
            """,
            (config_id, type_id, priority, is_enabled, is_working, asset_name),
        )
    cursor.executemany(
        "INSERT INTO t_bios_nut_configuration_secw_document (id_nut_configuration, id_secw_document) VALUES (%s, %s)",
        CONFIG_DOCUMENTS,
    )
    cursor.executemany(
        "INSERT INTO t_bios_nut_configuration_attribute (id_nut_configuration, keytag, value) VALUES (%s, %s, %s)",
        CONFIG_ATTRIBUTES,
    )


@pytest.fixture
def empty_conn():
    conn = SqliteConnection()
    yield conn
    conn.dispose()


@pytest.fixture
def conn(empty_conn):
    _seed(empty_conn)
    return empty_conn


@pytest.fixture
def db(conn):
    database = DatabaseConnection(config={})
    database._pool = FakePool(conn)
    return database
