"""Standby promotion service for PgUpgrader."""

import os
from typing import Callable, List

from pgupgrader.constants import MAINTENANCE_DB
from pgupgrader.errors import UpgraderError
from pgupgrader.models import InstanceStatuses, PromotionOutcome, StepResult, UpgradeConfig


class PromotionService:
    """Promotes a standby old cluster and takes both clusters offline.

    Only a standby old instance is stopped here. A running primary is left
    running and pg_upgrade is expected to report it.
    """

    ROLE_STANDBY = "standby"
    ROLE_PRIMARY = "primary"

    def __init__(self, logger, console, extension_service):
        self.logger = logger
        self.console = console
        self.extension_service = extension_service

    def is_in_recovery(self, config: UpgradeConfig, run_cmd: Callable) -> bool:
        cmd = [
            os.path.join(config.old_bin_path, "psql"),
            "-p",
            str(config.old_port),
            "-U",
            config.pguser,
            "-d",
            MAINTENANCE_DB,
            "-t",
            "-A",
            "-c",
            "SELECT pg_is_in_recovery();",
        ]
        try:
            result = run_cmd(cmd, check=False, capture_output=True)
        except UpgraderError as exc:
            self.logger.warning("Could not query recovery state: %s", exc)
            return False

        if result.returncode != 0:
            self.logger.warning("Could not query recovery state; assuming primary.")
            return False
        return (result.stdout or "").strip() == "t"

    def promote(self, config: UpgradeConfig, run_cmd: Callable) -> StepResult:
        self.console.print("[yellow]Old instance is in recovery. Promoting...[/yellow]")
        cmd = [os.path.join(config.old_bin_path, "pg_ctl"), "promote", "-D", config.old_path, "-w"]
        result = run_cmd(cmd, check=False, capture_output=True)
        return StepResult.from_process("promote", result)

    def stop(self, bin_path: str, data_dir: str, run_cmd: Callable) -> StepResult:
        cmd = [os.path.join(bin_path, "pg_ctl"), "stop", "-D", data_dir, "-m", "fast", "-w"]
        result = run_cmd(cmd, check=False, capture_output=True)
        return StepResult.from_process(f"stop:{data_dir}", result)

    def run(
        self,
        config: UpgradeConfig,
        statuses: InstanceStatuses,
        run_cmd: Callable,
    ) -> PromotionOutcome:
        outcome = PromotionOutcome()

        if not statuses.old.is_running:
            self.logger.info("Old instance is not running; skipping promotion.")
            return outcome

        if not self.is_in_recovery(config, run_cmd):
            outcome.role = self.ROLE_PRIMARY
            self.logger.warning(
                "Old instance is a running primary and will not be stopped before pg_upgrade."
            )
            return outcome

        outcome.role = self.ROLE_STANDBY
        promote_result = self.promote(config, run_cmd)
        outcome.steps.append(promote_result)
        if not promote_result.ok:
            self.console.print("[bold red]Promotion of the old instance failed.[/bold red]")
            self.logger.error("pg_ctl promote failed: %s", promote_result.output.strip())
            return outcome

        outcome.promoted = True
        self.console.print("[green]Old instance promoted.[/green]")

        drop_results = self.extension_service.drop_extensions(config, run_cmd)
        outcome.steps.extend(drop_results)

        targets: List[tuple] = [
            ("new", statuses.new.is_running, config.new_bin_path, config.new_path),
            ("old", statuses.old.is_running, config.old_bin_path, config.old_path),
        ]
        for label, running, bin_path, data_dir in targets:
            if not running:
                continue
            self.console.print(f"[blue]Stopping {label} instance...[/blue]")
            stop_result = self.stop(bin_path, data_dir, run_cmd)
            outcome.steps.append(stop_result)
            if stop_result.ok:
                outcome.stopped.append(label)
            else:
                self.logger.error("Could not stop %s instance: %s", label, stop_result.output.strip())

        return outcome
