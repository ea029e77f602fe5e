"""Subprocess execution service for PgUpgrader."""

import subprocess
from typing import List

from pgupgrader.errors import UpgraderError


class CommandRunner:
    """Runs PostgreSQL binaries as blocking calls with consistent error handling."""

    def __init__(self, logger):
        self.logger = logger

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        warn_on_failure: bool = True,
    ) -> subprocess.CompletedProcess:
        cmd_str = " ".join(cmd)
        self.logger.debug("Executing: %s", cmd_str)

        try:
            result = subprocess.run(cmd, text=True, capture_output=capture_output)
        except FileNotFoundError as exc:
            raise UpgraderError(
                f"Required command not found: {cmd[0]}. Check the PostgreSQL bin directory."
            ) from exc
        except OSError as exc:
            raise UpgraderError(f"Failed to execute command: {cmd_str}. {exc}") from exc

        if capture_output and result.stdout:
            self.logger.debug("Command output: %s", result.stdout.strip())

        if result.returncode == 0:
            return result

        stderr = (result.stderr or "").strip() if capture_output else ""
        message = f"Command failed ({result.returncode}): {cmd_str}"
        if stderr:
            message = f"{message}\n{stderr}"

        if check:
            raise UpgraderError(message)

        if warn_on_failure:
            self.logger.warning(message)
        else:
            self.logger.debug(message)
        return result
