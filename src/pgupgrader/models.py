"""Shared domain models for PgUpgrader."""

import subprocess
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .constants import MUTATING_MODES, SUMMARY_LOG_NAME, UPDATE_EXTENSIONS_SQL


@dataclass(frozen=True)
class UpgradeConfig:
    """Resolved run parameters, built once and passed to every service."""

    mode: str
    old_path: str
    new_path: str
    old_bin_path: str
    new_bin_path: str
    old_port: int
    new_port: int
    pguser: str
    pg_old_version: str
    pg_new_version: str
    extensions: Tuple[str, ...] = ()
    jobs: int = 1
    summary_file: str = SUMMARY_LOG_NAME
    sql_script: str = UPDATE_EXTENSIONS_SQL

    @property
    def is_mutating(self) -> bool:
        return self.mode in MUTATING_MODES


class InstanceStatus(Enum):
    RUNNING = "running"
    NOT_RUNNING = "not running"
    UNKNOWN = "unknown"

    @property
    def is_running(self) -> bool:
        # UNKNOWN is reported but handled as not running.
        return self is InstanceStatus.RUNNING


@dataclass(frozen=True)
class InstanceStatuses:
    """Status of both clusters, checked once at startup."""

    old: InstanceStatus
    new: InstanceStatus


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single external invocation."""

    name: str
    ok: bool
    returncode: int
    output: str = ""

    @classmethod
    def from_process(cls, name: str, result: subprocess.CompletedProcess) -> "StepResult":
        output = (result.stdout or "") if isinstance(result.stdout, str) else ""
        if result.returncode != 0 and isinstance(result.stderr, str) and result.stderr:
            output = f"{output}{result.stderr}"
        return cls(name=name, ok=result.returncode == 0, returncode=result.returncode, output=output)


@dataclass
class PromotionOutcome:
    """What the promotion controller did to the old instance."""

    role: Optional[str] = None
    promoted: bool = False
    stopped: List[str] = field(default_factory=list)
    steps: List[StepResult] = field(default_factory=list)


@dataclass
class TimingRecord:
    """Wall-clock checkpoints of a run, in seconds since the epoch."""

    start: float
    pre_maintenance: Optional[float] = None
    post_maintenance: Optional[float] = None
    end: Optional[float] = None

    @property
    def maintenance_ran(self) -> bool:
        return self.pre_maintenance is not None and self.post_maintenance is not None

    @property
    def total_seconds(self) -> int:
        end = self.end if self.end is not None else self.start
        return max(0, int(end - self.start))

    @property
    def pre_maintenance_seconds(self) -> int:
        if not self.maintenance_ran:
            return self.total_seconds
        return max(0, int(self.pre_maintenance - self.start))

    @property
    def maintenance_seconds(self) -> int:
        if not self.maintenance_ran:
            return 0
        return max(0, int(self.post_maintenance - self.pre_maintenance))
