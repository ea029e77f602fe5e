"""Domain errors for PgUpgrader."""


class UpgraderError(RuntimeError):
    """Raised when the upgrade cannot continue safely."""
