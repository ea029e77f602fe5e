"""Parameter resolution service for PgUpgrader."""

import os
import re
from typing import Any, Dict, Optional, Tuple

from packaging import version
from packaging.version import InvalidVersion

from pgupgrader.constants import (
    COMMANDS,
    EXTENSIONS_DELIMITER,
    HELP_COMMAND,
    SUMMARY_LOG_NAME,
    UPDATE_EXTENSIONS_SQL,
)
from pgupgrader.errors import UpgraderError
from pgupgrader.errors_catalog import actionable_error
from pgupgrader.models import UpgradeConfig


class ParameterResolver:
    """Turns raw option values into a validated UpgradeConfig."""

    REQUIRED_OPTIONS = (
        ("old_path", "--old-path"),
        ("new_path", "--new-path"),
        ("old_bin_path", "--old-bin-path"),
        ("new_bin_path", "--new-bin-path"),
        ("old_port", "--old-port"),
        ("new_port", "--new-port"),
        ("pguser", "--pguser"),
    )
    VERSION_OPTIONS = (
        ("pg_old_version", "--pg-old-version"),
        ("pg_new_version", "--pg-new-version"),
    )
    EXTENSION_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")

    def resolve(self, command: str, values: Dict[str, Any]) -> UpgradeConfig:
        if command not in COMMANDS or command == HELP_COMMAND:
            raise UpgraderError(f"Invalid command: {command}. Use one of: {', '.join(COMMANDS)}.")

        for key, option in self.REQUIRED_OPTIONS:
            if self._is_empty(values.get(key)):
                raise UpgraderError(actionable_error("missing_parameter", option=option, command=command))

        missing_versions = [option for key, option in self.VERSION_OPTIONS if self._is_empty(values.get(key))]
        if len(missing_versions) == len(self.VERSION_OPTIONS):
            raise UpgraderError(actionable_error("versions_unspecified"))
        if missing_versions:
            raise UpgraderError(
                actionable_error("missing_parameter", option=missing_versions[0], command=command)
            )

        old_version = str(values["pg_old_version"]).strip()
        new_version = str(values["pg_new_version"]).strip()
        self._validate_versions(old_version, new_version)

        old_port = self._parse_port(values["old_port"], "--old-port")
        new_port = self._parse_port(values["new_port"], "--new-port")
        if old_port == new_port:
            raise UpgraderError(actionable_error("same_ports", port=str(old_port)))

        return UpgradeConfig(
            mode=command,
            old_path=str(values["old_path"]),
            new_path=str(values["new_path"]),
            old_bin_path=str(values["old_bin_path"]),
            new_bin_path=str(values["new_bin_path"]),
            old_port=old_port,
            new_port=new_port,
            pguser=str(values["pguser"]),
            pg_old_version=old_version,
            pg_new_version=new_version,
            extensions=self.parse_extensions(values.get("extensions")),
            jobs=self._parse_jobs(values.get("jobs")),
            summary_file=values.get("summary_file") or SUMMARY_LOG_NAME,
            sql_script=values.get("sql_script") or UPDATE_EXTENSIONS_SQL,
        )

    def parse_extensions(self, raw: Optional[str]) -> Tuple[str, ...]:
        """Split the delimited extensions field, keeping order and duplicates."""
        if not raw:
            return ()

        names = []
        for item in str(raw).split(EXTENSIONS_DELIMITER):
            name = item.strip()
            if not name:
                continue
            if not self.EXTENSION_NAME_PATTERN.match(name):
                raise UpgraderError(actionable_error("invalid_extension", name=name))
            names.append(name)
        return tuple(names)

    @staticmethod
    def default_jobs() -> int:
        return os.cpu_count() or 1

    def _parse_jobs(self, raw: Any) -> int:
        if self._is_empty(raw):
            return self.default_jobs()
        try:
            jobs = int(raw)
        except (TypeError, ValueError) as exc:
            raise UpgraderError(f"--jobs must be an integer, got: {raw}") from exc
        if jobs < 1:
            raise UpgraderError("--jobs must be at least 1.")
        return jobs

    @staticmethod
    def _parse_port(raw: Any, option: str) -> int:
        try:
            port = int(raw)
        except (TypeError, ValueError) as exc:
            raise UpgraderError(actionable_error("invalid_port", option=option, value=str(raw))) from exc
        if not 1 <= port <= 65535:
            raise UpgraderError(actionable_error("invalid_port", option=option, value=str(raw)))
        return port

    @staticmethod
    def _validate_versions(old_version: str, new_version: str):
        parsed = {}
        for option, value in (("--pg-old-version", old_version), ("--pg-new-version", new_version)):
            try:
                parsed[option] = version.parse(value)
            except InvalidVersion as exc:
                raise UpgraderError(actionable_error("invalid_version", option=option, value=value)) from exc

        if parsed["--pg-new-version"] <= parsed["--pg-old-version"]:
            raise UpgraderError(actionable_error("version_not_newer", old=old_version, new=new_version))

    @staticmethod
    def _is_empty(value: Any) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())
