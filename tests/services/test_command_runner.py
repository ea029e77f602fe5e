import sys

import pytest

from pgupgrader.errors import UpgraderError
from pgupgrader.services.command_runner import CommandRunner


class DummyLogger:
    def __init__(self):
        self.warnings = []

    def debug(self, *_args, **_kwargs):
        return None

    def warning(self, *args, **_kwargs):
        self.warnings.append(args)


def test_command_runner_raises_with_stderr():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(UpgraderError, match="boom"):
        runner.run(
            [sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(1)"],
            check=True,
            capture_output=True,
        )


def test_command_runner_returns_when_check_disabled():
    logger = DummyLogger()
    runner = CommandRunner(logger=logger)

    result = runner.run(
        [sys.executable, "-c", "import sys; sys.exit(3)"],
        check=False,
        capture_output=True,
    )

    assert result.returncode == 3
    assert len(logger.warnings) == 1


def test_command_runner_can_skip_failure_warning():
    logger = DummyLogger()
    runner = CommandRunner(logger=logger)

    result = runner.run(
        [sys.executable, "-c", "import sys; sys.exit(3)"],
        check=False,
        capture_output=True,
        warn_on_failure=False,
    )

    assert result.returncode == 3
    assert logger.warnings == []


def test_command_runner_reports_missing_binary(tmp_path):
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(UpgraderError, match="Required command not found"):
        runner.run([str(tmp_path / "missing" / "pg_ctl"), "status"], check=False)


def test_command_runner_waits_for_completion_without_a_timeout():
    runner = CommandRunner(logger=DummyLogger())

    with pytest.raises(TypeError):
        runner.run([sys.executable, "-c", "pass"], timeout=0.1)

    result = runner.run([sys.executable, "-c", "import time; time.sleep(0.2)"], capture_output=True)
    assert result.returncode == 0
