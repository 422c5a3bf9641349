"""Centralized constants for the ZooKeeper migrator."""

DEFAULT_ZK_PORT = 2181
DEFAULT_ARTIFACT_NAME = "zkData"
DEFAULT_JAAS_SECTION = "Client"
DEFAULT_SASL_SERVICE = "zookeeper"
DEFAULT_SASL_MECHANISM = "GSSAPI"

ROOT_PATH = "/"
# Internal quota/config tree every ensemble maintains for itself
ZOOKEEPER_SYSTEM_PATH = "/zookeeper"

# Stream format
STREAM_FORMAT_VERSION = 1
RECORD_TYPE_HEADER = "header"
RECORD_TYPE_NODE = "node"

# ZooKeeper permission bits
PERM_READ = 1
PERM_WRITE = 2
PERM_CREATE = 4
PERM_DELETE = 8
PERM_ADMIN = 16
PERM_ALL = PERM_READ | PERM_WRITE | PERM_CREATE | PERM_DELETE | PERM_ADMIN

# Migration modes
MODE_MIGRATE = "migrate"
MODE_EXPORT = "export"
MODE_IMPORT = "import"
