"""pg_upgrade execution and post-upgrade service for PgUpgrader."""

import os
from typing import Callable, List

from pgupgrader.constants import CHECK_MODE, MAINTENANCE_DB, POSTGRESQL_CONF, START_LOG_NAME
from pgupgrader.errors import UpgraderError
from pgupgrader.errors_catalog import actionable_error
from pgupgrader.models import StepResult, TimingRecord, UpgradeConfig


class UpgradeService:
    """Runs pg_upgrade and the start/analyze/extension chain that follows it."""

    def __init__(self, logger, console, extension_service, timing_service):
        self.logger = logger
        self.console = console
        self.extension_service = extension_service
        self.timing_service = timing_service

    def build_upgrade_cmd(self, config: UpgradeConfig) -> List[str]:
        old_conf = os.path.join(config.old_path, POSTGRESQL_CONF)
        new_conf = os.path.join(config.new_path, POSTGRESQL_CONF)
        return [
            os.path.join(config.new_bin_path, "pg_upgrade"),
            "--old-datadir",
            config.old_path,
            "--new-datadir",
            config.new_path,
            "--old-bindir",
            config.old_bin_path,
            "--new-bindir",
            config.new_bin_path,
            "--old-port",
            str(config.old_port),
            "--new-port",
            str(config.new_port),
            "--username",
            config.pguser,
            "--old-options",
            f"-c config_file={old_conf}",
            "--new-options",
            f"-c config_file={new_conf}",
            f"--{config.mode}",
        ]

    def run_pg_upgrade(self, config: UpgradeConfig, run_cmd: Callable) -> StepResult:
        self.console.print(
            f"[bold blue]Running pg_upgrade ({config.pg_old_version} -> "
            f"{config.pg_new_version}, mode: {config.mode})...[/bold blue]"
        )
        result = run_cmd(self.build_upgrade_cmd(config), check=False)
        step = StepResult.from_process("pg_upgrade", result)
        if not step.ok:
            raise UpgraderError(
                actionable_error("upgrade_failed", mode=config.mode, returncode=str(step.returncode))
            )
        return step

    def _invoke(self, name: str, cmd: List[str], run_cmd: Callable, **kwargs) -> StepResult:
        # Invocation errors become failed results; the chain carries on.
        try:
            result = run_cmd(cmd, check=False, **kwargs)
        except UpgraderError as exc:
            self.logger.error("%s could not be run: %s", name, exc)
            return StepResult(name=name, ok=False, returncode=-1, output=str(exc))
        return StepResult.from_process(name, result)

    def append_port(self, config: UpgradeConfig):
        conf_path = os.path.join(config.new_path, POSTGRESQL_CONF)
        prefix = ""
        if os.path.exists(conf_path) and os.path.getsize(conf_path) > 0:
            with open(conf_path, "rb") as file_obj:
                file_obj.seek(-1, os.SEEK_END)
                if file_obj.read(1) != b"\n":
                    prefix = "\n"

        try:
            with open(conf_path, "a", encoding="utf-8") as file_obj:
                file_obj.write(f"{prefix}port = {config.new_port}\n")
        except OSError as exc:
            raise UpgraderError(f"Could not update {conf_path}: {exc}") from exc
        self.logger.info("Set port = %s in %s", config.new_port, conf_path)

    def start_new_instance(self, config: UpgradeConfig, run_cmd: Callable) -> StepResult:
        self.console.print("[blue]Starting new instance...[/blue]")
        cmd = [
            os.path.join(config.new_bin_path, "pg_ctl"),
            "start",
            "-D",
            config.new_path,
            "-w",
            "-l",
            os.path.join(config.new_path, START_LOG_NAME),
        ]
        return self._invoke("start_new", cmd, run_cmd)

    def run_maintenance(self, config: UpgradeConfig, run_cmd: Callable) -> StepResult:
        self.console.print(f"[blue]Analyzing all databases with {config.jobs} job(s)...[/blue]")
        cmd = [
            os.path.join(config.new_bin_path, "vacuumdb"),
            "--all",
            "--analyze-in-stages",
            "--jobs",
            str(config.jobs),
            "-p",
            str(config.new_port),
            "-U",
            config.pguser,
        ]
        return self._invoke("maintenance", cmd, run_cmd)

    def run_sql_script(self, config: UpgradeConfig, run_cmd: Callable) -> StepResult:
        self.console.print(f"[blue]Running {config.sql_script} on new instance...[/blue]")
        cmd = [
            os.path.join(config.new_bin_path, "psql"),
            "-p",
            str(config.new_port),
            "-U",
            config.pguser,
            "-d",
            MAINTENANCE_DB,
            "-f",
            config.sql_script,
        ]
        return self._invoke("sql_script", cmd, run_cmd, capture_output=True)

    def run(self, config: UpgradeConfig, timing: TimingRecord, run_cmd: Callable) -> List[StepResult]:
        results = [self.run_pg_upgrade(config, run_cmd)]

        if config.mode == CHECK_MODE:
            self.console.print("[green]Cluster check finished. No changes were made.[/green]")
            return results

        self.append_port(config)

        start_result = self.start_new_instance(config, run_cmd)
        results.append(start_result)
        if start_result.ok:
            self.timing_service.mark_pre_maintenance(timing)
            maintenance_result = self.run_maintenance(config, run_cmd)
            self.timing_service.mark_post_maintenance(timing)
            results.append(maintenance_result)
            if not maintenance_result.ok:
                self.logger.error("vacuumdb failed with exit code %s.", maintenance_result.returncode)
        else:
            self.console.print("[bold red]New instance failed to start; skipping maintenance.[/bold red]")
            self.logger.error("pg_ctl start failed with exit code %s.", start_result.returncode)

        results.extend(self.extension_service.create_extensions(config, run_cmd))

        # Runs whatever the maintenance outcome was.
        if os.path.isfile(config.sql_script):
            sql_result = self.run_sql_script(config, run_cmd)
            results.append(sql_result)
            if not sql_result.ok:
                self.logger.error("%s failed: %s", config.sql_script, sql_result.output.strip())

        self.console.print("[bold green]Upgrade complete![/bold green]")
        return results
