"""Run timing and summary log service."""

import os
import time
from typing import Callable

from pgupgrader.errors import UpgraderError
from pgupgrader.models import TimingRecord


class TimingService:
    """Collects run checkpoints and writes the timing summary."""

    def __init__(self, logger, console, clock: Callable[[], float] = time.time):
        self.logger = logger
        self.console = console
        self.clock = clock

    def start(self) -> TimingRecord:
        return TimingRecord(start=self.clock())

    def mark_pre_maintenance(self, record: TimingRecord):
        record.pre_maintenance = self.clock()

    def mark_post_maintenance(self, record: TimingRecord):
        record.post_maintenance = self.clock()

    def finish(self, record: TimingRecord):
        record.end = self.clock()

    @staticmethod
    def format_duration(seconds: int) -> str:
        minutes, remainder = divmod(seconds, 60)
        return f"{minutes} min {remainder} sec"

    def render(self, record: TimingRecord) -> str:
        lines = [
            "PostgreSQL upgrade summary",
            "==========================",
            f"Total time: {self.format_duration(record.total_seconds)}",
            f"Pre-maintenance time: {self.format_duration(record.pre_maintenance_seconds)}",
            f"Maintenance time: {self.format_duration(record.maintenance_seconds)}",
        ]
        return "\n".join(lines) + "\n"

    def write_summary(self, record: TimingRecord, summary_file: str) -> str:
        if not record.maintenance_ran:
            self.logger.debug("Maintenance did not run; maintenance time reported as zero.")

        try:
            os.makedirs(os.path.dirname(summary_file) or ".", exist_ok=True)
            with open(summary_file, "w", encoding="utf-8") as file_obj:
                file_obj.write(self.render(record))
        except OSError as exc:
            raise UpgraderError(f"Could not write summary file '{summary_file}': {exc}") from exc

        path = os.path.abspath(summary_file)
        self.console.print(f"[bold]Timing summary written to: {path}[/bold]")
        self.logger.info("Timing summary written to %s", path)
        return path
