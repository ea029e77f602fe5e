import logging
import os
import subprocess
import time
from typing import Callable, List, Optional

from rich.console import Console
from rich.prompt import Confirm

from .errors import UpgraderError
from .errors_catalog import actionable_error
from .models import InstanceStatuses, UpgradeConfig
from .services.command_runner import CommandRunner
from .services.extensions import ExtensionService
from .services.promotion import PromotionService
from .services.status import InstanceStatusService
from .services.timing import TimingService
from .services.upgrade import UpgradeService

console = Console()
logger = logging.getLogger("pgupgrader")


class PgUpgrader:
    def __init__(
        self,
        config: UpgradeConfig,
        assume_yes: bool = False,
        confirm: Optional[Callable[[str], bool]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.assume_yes = assume_yes
        self.confirm = confirm or self._ask_confirmation
        self.current_step_name: Optional[str] = None

        self.command_runner = CommandRunner(logger=logger)
        self.status_service = InstanceStatusService(logger=logger, console=console)
        self.extension_service = ExtensionService(logger=logger, console=console)
        self.promotion_service = PromotionService(
            logger=logger,
            console=console,
            extension_service=self.extension_service,
        )
        self.timing_service = TimingService(logger=logger, console=console, clock=clock)
        self.upgrade_service = UpgradeService(
            logger=logger,
            console=console,
            extension_service=self.extension_service,
            timing_service=self.timing_service,
        )

    @staticmethod
    def _ask_confirmation(prompt: str) -> bool:
        return Confirm.ask(prompt, console=console, default=False)

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        warn_on_failure: bool = True,
    ) -> subprocess.CompletedProcess:
        return self.command_runner.run(
            cmd,
            check=check,
            capture_output=capture_output,
            warn_on_failure=warn_on_failure,
        )

    def _run_step(self, name: str, callback, *args, **kwargs):
        self.current_step_name = name
        logger.debug("Step started: %s", name)
        result = callback(*args, **kwargs)
        logger.debug("Step finished: %s", name)
        self.current_step_name = None
        return result

    def validate_environment(self):
        """Fails before any external call when pg_upgrade itself is missing.

        Other binaries are not checked here: status checks, the role query and
        maintenance degrade on their own when they cannot be invoked.
        """
        path = os.path.join(self.config.new_bin_path, "pg_upgrade")
        if not os.path.isfile(path):
            raise UpgraderError(actionable_error("binary_not_found", path=path, option="--new-bin-path"))

    def check_instances(self) -> InstanceStatuses:
        return self.status_service.check_all(self.config, self._run_cmd)

    def confirm_upgrade(self) -> bool:
        if self.assume_yes:
            return True

        return self.confirm(
            f"Upgrade {self.config.old_path} (PostgreSQL {self.config.pg_old_version}) to "
            f"{self.config.new_path} (PostgreSQL {self.config.pg_new_version}) in "
            f"{self.config.mode} mode?"
        )

    def run(self) -> int:
        try:
            logger.info("Starting PgUpgrader...")
            timing = self.timing_service.start()

            self._run_step("validate_environment", self.validate_environment)
            statuses = self._run_step("check_instances", self.check_instances)

            if self.config.is_mutating:
                if not self.confirm_upgrade():
                    console.print("[yellow]Upgrade cancelled. No changes were made.[/yellow]")
                    logger.info("Upgrade cancelled at confirmation prompt")
                    return 0

                self._run_step(
                    "promote_old_instance",
                    self.promotion_service.run,
                    self.config,
                    statuses,
                    self._run_cmd,
                )

            self._run_step("upgrade", self.upgrade_service.run, self.config, timing, self._run_cmd)

            self.timing_service.finish(timing)
            self._run_step("write_summary", self.timing_service.write_summary, timing, self.config.summary_file)
            return 0

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user during step '%s'", self.current_step_name or "run")
            return 1
        except UpgraderError as exc:
            console.print(f"[bold red]Error:[/bold red] {exc}")
            logger.error(str(exc))
            return 1
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
