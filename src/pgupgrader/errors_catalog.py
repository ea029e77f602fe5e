"""Actionable error catalog for PgUpgrader."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "missing_parameter": {
        "what": "Missing required option '{option}' for the '{command}' command.",
        "next": "Pass `{option}` on the command line or set it in the config file.",
    },
    "versions_unspecified": {
        "what": "PostgreSQL versions are not specified.",
        "next": "Provide both `--pg-old-version` and `--pg-new-version`.",
    },
    "invalid_version": {
        "what": "Invalid PostgreSQL version for {option}: {value}",
        "next": "Use a numeric version such as `13` or `16.2`.",
    },
    "version_not_newer": {
        "what": "New version {new} is not greater than old version {old}.",
        "next": "Check `--pg-old-version` and `--pg-new-version`; only upgrades are supported.",
    },
    "invalid_port": {
        "what": "Invalid port for {option}: {value}",
        "next": "Use an integer between 1 and 65535.",
    },
    "same_ports": {
        "what": "Old and new instances cannot share port {port}.",
        "next": "Give the new cluster a different `--new-port`.",
    },
    "invalid_extension": {
        "what": "Invalid extension name: {name}",
        "next": "Extension names may only contain letters, digits, `_` and `-`.",
    },
    "binary_not_found": {
        "what": "Required binary not found: {path}",
        "next": "Check `{option}` points at the PostgreSQL bin directory.",
    },
    "upgrade_failed": {
        "what": "pg_upgrade failed in {mode} mode (exit code {returncode}).",
        "next": "Inspect the pg_upgrade logs in the working directory and retry.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
