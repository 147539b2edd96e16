"""
Centralized constants for the discovery configuration database layer.
Pure data, no runtime dependencies.
"""

# ============================================
# DATABASE DEFAULTS
# ============================================
DEFAULT_DB_NAME = "box_utf8"
DEFAULT_DB_USER = "root"
DEFAULT_DB_PORT = 3306
DEFAULT_POOL_SIZE = 3

# Two lines: user, then password (values may be quoted)
PASSWD_FILE = "/etc/default/bios-db-rw"

LOGGER_NAME = "AssetDiscovery"

# ============================================
# TABLES
# ============================================
T_ASSET_ELEMENT = "t_bios_asset_element"
T_CONFIG = "t_bios_nut_configuration"
T_CONFIG_TYPE = "t_bios_nut_configuration_type"
T_CONFIG_ATTRIBUTE = "t_bios_nut_configuration_attribute"
T_CONFIG_DEFAULT_ATTRIBUTE = "t_bios_nut_configuration_default_attribute"
T_CONFIG_DOCUMENT = "t_bios_nut_configuration_secw_document"
T_CONFIG_TYPE_DOCUMENT_TYPE = "t_bios_nut_configuration_type_secw_document_type_requirements"
T_DOCUMENT = "t_bios_secw_document"
T_DOCUMENT_TYPE = "t_bios_secw_document_type"

# ============================================
# CONFIGURATION FILTERS
# ============================================
# WHERE fragments appended to the default/override attribute queries.
# Both expect a single asset id parameter.
REQUEST_WHERE_ALL_CONFIG = " WHERE config.id_asset_element = %s"
REQUEST_WHERE_CANDIDATE_CONFIG = (
    " WHERE config.id_asset_element = %s"
    " AND config.is_working = TRUE AND config.is_enabled = TRUE"
)

# Grouping in discovery.aggregate_config_rows depends on this order
CONFIG_ORDER_BY = " ORDER BY config.priority ASC, config.id_nut_configuration"

# Credential document types known to the security wallet
SECW_DOCUMENT_TYPES = [
    "Snmpv1",
    "Snmpv3",
    "UserAndPassword",
    "ExternalCertificate",
    "InternalCertificate",
]
