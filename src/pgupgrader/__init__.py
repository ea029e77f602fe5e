"""
PgUpgrader - in-place PostgreSQL major version upgrades with pg_upgrade
"""

__version__ = "0.1.0"

from .core import PgUpgrader, UpgraderError

__all__ = ["PgUpgrader", "UpgraderError"]
