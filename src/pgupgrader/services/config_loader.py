"""Reads .pgupgrader.yml cluster defaults for the CLI."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pgupgrader.errors import UpgraderError


class ConfigLoader:
    """Turns a pgupgrader YAML file into option defaults keyed like the CLI.

    Cluster settings may be written flat (``old_port: 5432``) or grouped per
    cluster::

        old:
          path: /var/lib/postgresql/13/main
          bin_path: /usr/lib/postgresql/13/bin
          port: 5432
          version: "13"
        new:
          path: /var/lib/postgresql/16/main
          ...

    Both spellings end up as the flat option names.
    """

    CLUSTER_SECTIONS = ("old", "new")
    CLUSTER_FIELDS = {
        "path": "{side}_path",
        "bin_path": "{side}_bin_path",
        "port": "{side}_port",
        "version": "pg_{side}_version",
    }
    SUPPORTED_KEYS = {
        "old_path",
        "new_path",
        "old_bin_path",
        "new_bin_path",
        "old_port",
        "new_port",
        "pguser",
        "pg_old_version",
        "pg_new_version",
        "extensions",
        "jobs",
        "verbose",
        "log_file",
        "summary_file",
        "sql_script",
        "yes",
    }

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.exists():
            raise UpgraderError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise UpgraderError(f"Could not parse pgupgrader config '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise UpgraderError(
                f"pgupgrader config '{config_path}' must be a YAML mapping of option names to values."
            )

        values = self._flatten_clusters(parsed, config_path)

        unknown = sorted(set(values.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            raise UpgraderError(
                f"Unknown configuration keys in '{config_path}': {', '.join(unknown)}. "
                "Use the CLI option names with underscores, e.g. old_bin_path for --old-bin-path."
            )

        # A YAML list is accepted for extensions as well as the CLI's comma form.
        extensions = values.get("extensions")
        if isinstance(extensions, list):
            values["extensions"] = ",".join(str(item) for item in extensions)

        return values

    def _flatten_clusters(self, parsed: Dict[str, Any], config_path: str) -> Dict[str, Any]:
        values = {key: value for key, value in parsed.items() if key not in self.CLUSTER_SECTIONS}

        for side in self.CLUSTER_SECTIONS:
            section = parsed.get(side)
            if section is None:
                continue
            if not isinstance(section, dict):
                raise UpgraderError(f"'{side}' in '{config_path}' must be a mapping of cluster settings.")

            unknown = sorted(set(section.keys()) - set(self.CLUSTER_FIELDS))
            if unknown:
                raise UpgraderError(
                    f"Unknown configuration keys under '{side}' in '{config_path}': {', '.join(unknown)}. "
                    f"Supported: {', '.join(sorted(self.CLUSTER_FIELDS))}."
                )

            for field, template in self.CLUSTER_FIELDS.items():
                if field not in section:
                    continue
                key = template.format(side=side)
                if key in values:
                    raise UpgraderError(f"'{key}' is set twice in '{config_path}' ({side}.{field} and {key}).")
                values[key] = section[field]

        return values
