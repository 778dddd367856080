import ast
import subprocess
import sys
import threading
from collections import defaultdict
from pathlib import Path
from types import SimpleNamespace
from typing import Dict, Iterable, Set

import pytest

_ROOT_DIR = Path(__file__).absolute().parent.parent
_PACKAGE_DIR = (_ROOT_DIR / "cryptstrap").absolute()

if str(_ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(_ROOT_DIR))

from cryptstrap import cli, executil  # noqa: E402

_EXECUTED_LINES: Dict[Path, Set[int]] = defaultdict(set)
_CANDIDATE_LINES: Dict[Path, Set[int]] = {}
_PREVIOUS_TRACE = None
_PREVIOUS_THREAD_TRACE = None


def _iter_python_files(directory: Path) -> Iterable[Path]:
    for path in directory.rglob("*.py"):
        if path.is_file():
            yield path.absolute()


def _candidate_lines_for(path: Path) -> Set[int]:
    source = path.read_text(encoding="utf-8")
    try:
        tree = ast.parse(source, filename=str(path))
    except SyntaxError:
        return set()
    source_lines = source.splitlines()
    lines = set()
    for node in ast.walk(tree):
        if not isinstance(node, ast.stmt):
            continue
        text = source_lines[node.lineno - 1].strip()
        if text and not text.startswith("#"):
            lines.add(node.lineno)
    return lines


for file_path in _iter_python_files(_PACKAGE_DIR):
    _CANDIDATE_LINES[file_path] = _candidate_lines_for(file_path)


def _trace(frame, event, arg):
    if event != "line":
        return _trace
    filename = Path(frame.f_code.co_filename)
    if filename in _CANDIDATE_LINES:
        _EXECUTED_LINES[filename].add(frame.f_lineno)
    return _trace


def pytest_sessionstart(session):
    global _PREVIOUS_TRACE, _PREVIOUS_THREAD_TRACE
    _EXECUTED_LINES.clear()
    _PREVIOUS_TRACE = sys.gettrace()
    _PREVIOUS_THREAD_TRACE = threading.gettrace()
    sys.settrace(_trace)
    threading.settrace(_trace)


def pytest_sessionfinish(session, exitstatus):
    sys.settrace(_PREVIOUS_TRACE)
    threading.settrace(_PREVIOUS_THREAD_TRACE)
    terminal = session.config.pluginmanager.get_plugin("terminalreporter")
    write_line = terminal.write_line if terminal else print

    total = covered_total = 0
    write_line("")
    write_line("Statement coverage for 'cryptstrap':")
    for path in sorted(_CANDIDATE_LINES):
        candidates = _CANDIDATE_LINES[path]
        if not candidates:
            continue
        covered = len(_EXECUTED_LINES.get(path, set()) & candidates)
        total += len(candidates)
        covered_total += covered
        write_line(f"{str(path.relative_to(_ROOT_DIR)):<40} {covered:>4}/{len(candidates):<4} {covered / len(candidates) * 100:6.1f}%")
    if total:
        write_line(f"{'TOTAL':<40} {covered_total:>4}/{total:<4} {covered_total / total * 100:6.1f}%")


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Keep trace logs and artifacts inside the test's temporary directory."""

    monkeypatch.setenv("CRYPTSTRAP_BASE_PATH", str(tmp_path / "state"))
    monkeypatch.setattr(executil, "LOG_DIRS", [str(tmp_path / "logs")])
    monkeypatch.setattr(executil, "LOG_PATH", None)
    monkeypatch.setattr(cli, "RESULT_LOG_PATH", None)
    monkeypatch.setattr(cli, "JSON_OUTPUT_ENABLED", True)
    monkeypatch.setattr(cli, "_CURRENT_DEVICE", None)
    return tmp_path / "logs" / executil.LOG_NAME


class CommandRecorder:
    """Stand-in for ``executil.run`` that records commands and stdin."""

    def __init__(self, outputs=None, failures=()):
        self.calls = []
        self.inputs = []
        self.dry_runs = []
        self.outputs = dict(outputs or {})
        self.failures = set(failures)

    def __call__(self, cmd, check=True, dry_run=False, timeout=None, input_text=None, env=None):
        cmd = list(cmd)
        self.calls.append(cmd)
        self.inputs.append(input_text)
        self.dry_runs.append(dry_run)
        key = tuple(cmd)
        rc = 1 if key in self.failures else 0
        out = self.outputs.get(key, "")
        if check and rc:
            raise subprocess.CalledProcessError(rc, cmd, out, "failed")
        return SimpleNamespace(rc=rc, out=out, err="", duration=0.0)

    def heads(self, n=2):
        return [tuple(c[:n]) for c in self.calls]


@pytest.fixture
def recorder(monkeypatch):
    """Patch ``run`` (and ``udev_settle`` where present) in a module."""

    def _install(module, outputs=None, failures=()):
        rec = CommandRecorder(outputs, failures)
        monkeypatch.setattr(module, "run", rec)
        if hasattr(module, "udev_settle"):
            monkeypatch.setattr(module, "udev_settle", lambda: None)
        return rec

    return _install
