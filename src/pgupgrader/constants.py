"""Fixed names and commands shared across PgUpgrader services."""

CHECK_MODE = "check"
MUTATING_MODES = ("clone", "link", "copy")
HELP_COMMAND = "help"
COMMANDS = (CHECK_MODE,) + MUTATING_MODES + (HELP_COMMAND,)

SUMMARY_LOG_NAME = "pg_upgrade_summary.log"
UPDATE_EXTENSIONS_SQL = "update_extensions.sql"
DEFAULT_CONFIG_NAME = ".pgupgrader.yml"
POSTGRESQL_CONF = "postgresql.conf"
START_LOG_NAME = "pgupgrader_start.log"

EXTENSIONS_DELIMITER = ","
MAINTENANCE_DB = "postgres"
RUNNING_MARKER = "server is running"
PG_CTL_NOT_RUNNING_EXIT = 3
