"""
Test the process runner against real child processes of the current interpreter
"""

import sys
from pathlib import Path

import pytest

from video_shrinker.domain.exceptions import NotFoundException, ProcessFailureException
from video_shrinker.services.process_runner import ProcessRunner, format_command

PYTHON = sys.executable


def script(code: str):
    return ["-c", code]


@pytest.fixture
def runner():
    return ProcessRunner()


class TestResolveExecutable:
    def test_absolute_path_is_used_as_is(self, runner):
        assert runner.resolve_executable(PYTHON) == Path(PYTHON)

    def test_bare_name_on_search_path(self):
        python_dir = str(Path(PYTHON).parent)
        runner = ProcessRunner(search_path=python_dir)

        resolved = runner.resolve_executable(Path(PYTHON).name)

        assert resolved.is_file()

    def test_unknown_executable_raises(self, runner):
        with pytest.raises(NotFoundException) as exc_info:
            runner.resolve_executable("definitely-not-an-installed-tool")
        assert exc_info.value.executable == "definitely-not-an-installed-tool"

    def test_empty_search_path_raises(self, tmp_path):
        runner = ProcessRunner(search_path=str(tmp_path))
        with pytest.raises(NotFoundException):
            runner.resolve_executable(Path(PYTHON).name)


class TestRun:
    def test_captures_stdout_and_stderr(self, runner):
        result = runner.run(PYTHON, script("import sys; print('out'); print('err', file=sys.stderr)"))

        assert result.exit_code == 0
        assert result.succeeded
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"

    def test_stdout_lines_are_forwarded(self, runner):
        lines = []

        runner.run(PYTHON, script("for i in range(3): print(i)"), on_stdout_line=lines.append)

        assert lines == ["0", "1", "2"]

    def test_stderr_is_mirrored_to_log(self, runner, tmp_path):
        log_path = tmp_path / "transcode.log"

        runner.run(
            PYTHON,
            script("import sys; sys.stderr.write('time=00:00:01.00\\n')"),
            stderr_log_path=log_path,
        )

        assert "time=00:00:01.00" in log_path.read_text(encoding="utf-8")

    def test_large_stderr_does_not_block(self, runner):
        result = runner.run(PYTHON, script("import sys; sys.stderr.write('x' * 200000)"))

        assert len(result.stderr) == 200000

    def test_working_dir_defaults_to_executable_dir(self, runner):
        result = runner.run(PYTHON, script("import os; print(os.getcwd())"))

        assert Path(result.stdout.strip()).resolve() == Path(PYTHON).parent.resolve()

    def test_explicit_working_dir(self, runner, tmp_path):
        result = runner.run(PYTHON, script("import os; print(os.getcwd())"), working_dir=tmp_path)

        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_non_zero_exit_raises_with_result(self, runner):
        with pytest.raises(ProcessFailureException) as exc_info:
            runner.run(PYTHON, script("import sys; sys.stderr.write('bad input'); sys.exit(3)"))

        assert exc_info.value.exit_code == 3
        assert "bad input" in exc_info.value.stderr

    def test_ignored_exit_code(self, runner):
        result = runner.run(PYTHON, script("import sys; sys.exit(3)"), ignore_exit_codes=(3,))

        assert result.exit_code == 3
        assert not result.succeeded

    def test_continue_on_error(self, runner):
        result = runner.run(PYTHON, script("import sys; sys.exit(7)"), continue_on_error=True)

        assert result.exit_code == 7

    def test_asynchronous_returns_none(self, runner, tmp_path):
        marker = tmp_path / "started"

        result = runner.run(
            PYTHON,
            script(f"open({str(marker)!r}, 'w').close()"),
            asynchronous=True,
        )

        assert result is None

    def test_callback_error_kills_the_child(self, runner):
        def fail(line):
            raise RuntimeError("stop")

        with pytest.raises(RuntimeError):
            runner.run(
                PYTHON,
                script("import time\nprint('first', flush=True)\ntime.sleep(30)"),
                on_stdout_line=fail,
            )


def test_format_command_quotes_spaces():
    command = format_command(["ffmpeg", "-i", "my file.ts"])

    assert "my file.ts" in command
    assert command != "ffmpeg -i my file.ts"
