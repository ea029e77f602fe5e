"""Instance status checks for PgUpgrader."""

import os
from typing import Callable

from pgupgrader.constants import PG_CTL_NOT_RUNNING_EXIT, RUNNING_MARKER
from pgupgrader.errors import UpgraderError
from pgupgrader.models import InstanceStatus, InstanceStatuses, UpgradeConfig


class InstanceStatusService:
    """Asks pg_ctl whether the old and new clusters are running."""

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def check_all(self, config: UpgradeConfig, run_cmd: Callable) -> InstanceStatuses:
        old_status = self.check_status(config.old_bin_path, config.old_path, run_cmd)
        new_status = self.check_status(config.new_bin_path, config.new_path, run_cmd)

        self.console.print(f"[blue]Old instance ({config.pg_old_version}): {old_status.value}[/blue]")
        self.console.print(f"[blue]New instance ({config.pg_new_version}): {new_status.value}[/blue]")
        return InstanceStatuses(old=old_status, new=new_status)

    def check_status(self, bin_path: str, data_dir: str, run_cmd: Callable) -> InstanceStatus:
        cmd = [os.path.join(bin_path, "pg_ctl"), "status", "-D", data_dir]
        try:
            result = run_cmd(cmd, check=False, capture_output=True, warn_on_failure=False)
        except UpgraderError as exc:
            self.logger.warning("Could not determine status of %s: %s", data_dir, exc)
            return InstanceStatus.UNKNOWN

        if RUNNING_MARKER in (result.stdout or ""):
            return InstanceStatus.RUNNING
        if result.returncode == PG_CTL_NOT_RUNNING_EXIT:
            return InstanceStatus.NOT_RUNNING

        self.logger.warning(
            "Status of %s is unknown (pg_ctl exit code %s); treating it as not running.",
            data_dir,
            result.returncode,
        )
        return InstanceStatus.UNKNOWN
