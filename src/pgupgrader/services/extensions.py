"""Extension drop/create service for PgUpgrader."""

import os
from typing import Callable, List

from pgupgrader.constants import MAINTENANCE_DB
from pgupgrader.errors import UpgraderError
from pgupgrader.models import StepResult, UpgradeConfig


class ExtensionService:
    """Drops configured extensions on the old cluster and recreates them on the new one.

    Both phases are best-effort: a failure for one database/extension pair is
    recorded and logged, and the loop carries on with the next pair.
    """

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    @staticmethod
    def _psql_cmd(bin_path: str, port: int, user: str, database: str, sql: str) -> List[str]:
        return [
            os.path.join(bin_path, "psql"),
            "-p",
            str(port),
            "-U",
            user,
            "-d",
            database,
            "-t",
            "-A",
            "-c",
            sql,
        ]

    def list_databases(self, bin_path: str, port: int, user: str, run_cmd: Callable) -> List[str]:
        sql = "SELECT datname FROM pg_database WHERE NOT datistemplate ORDER BY datname;"
        try:
            result = run_cmd(
                self._psql_cmd(bin_path, port, user, MAINTENANCE_DB, sql),
                check=False,
                capture_output=True,
            )
        except UpgraderError as exc:
            self.logger.error("Could not list databases on port %s: %s", port, exc)
            return []

        if result.returncode != 0:
            self.logger.error("Could not list databases on port %s.", port)
            return []

        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def drop_extensions(self, config: UpgradeConfig, run_cmd: Callable) -> List[StepResult]:
        if not config.extensions:
            return []

        self.console.print(
            f"[blue]Dropping extensions on old instance: {', '.join(config.extensions)}[/blue]"
        )
        results: List[StepResult] = []
        databases = self.list_databases(config.old_bin_path, config.old_port, config.pguser, run_cmd)

        for database in databases:
            for extension in config.extensions:
                name = f"drop_extension:{database}:{extension}"
                exists_sql = f"SELECT 1 FROM pg_extension WHERE extname = '{extension}';"
                try:
                    check = run_cmd(
                        self._psql_cmd(
                            config.old_bin_path, config.old_port, config.pguser, database, exists_sql
                        ),
                        check=False,
                        capture_output=True,
                    )
                    if check.returncode != 0:
                        results.append(StepResult.from_process(name, check))
                        self.logger.warning(
                            "Could not check extension %s in database %s.", extension, database
                        )
                        continue
                    if "1" not in check.stdout.split():
                        self.logger.debug("Extension %s not present in %s.", extension, database)
                        continue

                    drop = run_cmd(
                        self._psql_cmd(
                            config.old_bin_path,
                            config.old_port,
                            config.pguser,
                            database,
                            f'DROP EXTENSION "{extension}";',
                        ),
                        check=False,
                        capture_output=True,
                    )
                except UpgraderError as exc:
                    self.logger.warning("Dropping %s in %s failed: %s", extension, database, exc)
                    results.append(StepResult(name=name, ok=False, returncode=-1, output=str(exc)))
                    continue

                results.append(StepResult.from_process(name, drop))
                if drop.returncode == 0:
                    self.logger.info("Dropped extension %s in database %s.", extension, database)

        return results

    def create_extensions(self, config: UpgradeConfig, run_cmd: Callable) -> List[StepResult]:
        if not config.extensions:
            return []

        self.console.print(
            f"[blue]Creating extensions on new instance: {', '.join(config.extensions)}[/blue]"
        )
        results: List[StepResult] = []
        databases = self.list_databases(config.new_bin_path, config.new_port, config.pguser, run_cmd)

        for database in databases:
            for extension in config.extensions:
                name = f"create_extension:{database}:{extension}"
                try:
                    create = run_cmd(
                        self._psql_cmd(
                            config.new_bin_path,
                            config.new_port,
                            config.pguser,
                            database,
                            f'CREATE EXTENSION IF NOT EXISTS "{extension}";',
                        ),
                        check=False,
                        capture_output=True,
                    )
                except UpgraderError as exc:
                    self.logger.warning("Creating %s in %s failed: %s", extension, database, exc)
                    results.append(StepResult(name=name, ok=False, returncode=-1, output=str(exc)))
                    continue

                results.append(StepResult.from_process(name, create))

        failed = [result for result in results if not result.ok]
        if failed:
            self.console.print(f"[yellow]{len(failed)} extension(s) could not be created.[/yellow]")
        return results
