from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest

from vault_editor.config import EditorConfig
from vault_editor.errors import ScanFailure, StoreWriteConflict
from vault_editor.index import MetadataStore, ScannerBridge, ScanResult, ScanWorker
from vault_editor.index.scanner import build_command, parse_output


def python_scanner(code: str) -> tuple[str, ...]:
    return (sys.executable, "-c", code)


def test_build_command_appends_path_and_base(tmp_path: Path) -> None:
    argv = build_command(("scan", "--json"), tmp_path / "a.md", tmp_path)

    assert argv == ["scan", "--json", str(tmp_path / "a.md"), str(tmp_path)]


def test_parse_output_accepts_contract() -> None:
    result = parse_output(Path("a.md"), '{"path": "a.md", "tags": ["x"], "links": []}')

    assert result == ScanResult(path="a.md", tags=("x",), links=())


@pytest.mark.parametrize(
    "stdout",
    [
        "not json",
        "[1, 2]",
        '{"tags": "x", "links": []}',
        '{"tags": [], "links": [1]}',
    ],
)
def test_parse_output_rejects_malformed(stdout: str) -> None:
    with pytest.raises(ScanFailure) as info:
        parse_output(Path("a.md"), stdout)

    assert info.value.reason.startswith("bad_output")


def test_reference_scanner_round_trip(
    config: EditorConfig,
    store: MetadataStore,
    write_note: Callable[[str, str], Path],
) -> None:
    note = write_note("note.md", "#alpha [[Beta]]")
    bridge = ScannerBridge(config, store)

    file_id = bridge.sync(note)

    assert store.tags_for_file(file_id) == ["alpha"]
    assert [link.target_name for link in store.backlinks_from(file_id)] == ["Beta"]


def test_scan_nonzero_exit(config: EditorConfig, store: MetadataStore) -> None:
    bridge = ScannerBridge(
        replace(
            config,
            scanner_command=python_scanner(
                "import sys; sys.stderr.write('broken\\n'); sys.exit(3)"
            ),
        ),
        store,
    )

    with pytest.raises(ScanFailure) as info:
        bridge.scan(config.base_dir / "a.md")

    assert info.value.reason == "nonzero_exit"
    assert info.value.returncode == 3
    assert "broken" in str(info.value)


def test_scan_timeout(config: EditorConfig, store: MetadataStore) -> None:
    slow = replace(
        config,
        scanner_command=python_scanner("import time; time.sleep(10)"),
        scan_timeout_s=0.2,
    )

    with pytest.raises(ScanFailure) as info:
        ScannerBridge(slow, store).scan(config.base_dir / "a.md")

    assert info.value.reason == "timeout"


def test_scan_launch_failure(
    config: EditorConfig, store: MetadataStore, tmp_path: Path
) -> None:
    missing = replace(config, scanner_command=(str(tmp_path / "no-such-scanner"),))

    with pytest.raises(ScanFailure) as info:
        ScannerBridge(missing, store).scan(config.base_dir / "a.md")

    assert info.value.reason.startswith("launch_failed")


def test_failed_scan_leaves_index_untouched(
    config: EditorConfig, store: MetadataStore, write_note: Callable[[str, str], Path]
) -> None:
    note = write_note("note.md", "#kept")
    ScannerBridge(config, store).sync(note)
    broken = ScannerBridge(
        replace(config, scanner_command=python_scanner("print('garbage')")), store
    )

    with pytest.raises(ScanFailure):
        broken.sync(note)

    assert store.query_tags() == ["kept"]


class FlakyStore:
    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def apply_scan(self, path, tags, links) -> int:
        self.calls += 1
        if self.calls <= self.failures:
            raise StoreWriteConflict("apply_scan", "database is locked")
        return 7


def test_apply_retries_once_on_conflict(config: EditorConfig) -> None:
    store = FlakyStore(failures=1)
    bridge = ScannerBridge(config, store)  # type: ignore[arg-type]

    file_id = bridge.apply(ScanResult(path="a.md"))

    assert file_id == 7
    assert store.calls == 2


def test_apply_gives_up_after_second_conflict(config: EditorConfig) -> None:
    store = FlakyStore(failures=2)
    bridge = ScannerBridge(config, store)  # type: ignore[arg-type]

    with pytest.raises(ScanFailure) as info:
        bridge.apply(ScanResult(path="a.md"))

    assert info.value.reason.startswith("store_conflict")
    assert store.calls == 2


def test_worker_returns_outcomes_with_generation(
    config: EditorConfig, write_note: Callable[[str, str], Path]
) -> None:
    note = write_note("note.md", "#worker")
    worker = ScanWorker(config)
    try:
        worker.submit(note, 4)
        worker.wait_idle(30.0)
        outcomes = worker.poll()
    finally:
        worker.stop()

    assert len(outcomes) == 1
    outcome = outcomes[0]
    assert outcome.ok
    assert outcome.path == str(note)
    assert outcome.generation == 4
    assert outcome.result is not None and outcome.result.tags == ("worker",)


def test_worker_reports_scan_errors(config: EditorConfig, tmp_path: Path) -> None:
    failing = replace(config, scanner_command=python_scanner("import sys; sys.exit(1)"))
    worker = ScanWorker(failing)
    try:
        worker.submit(tmp_path / "a.md", 1)
        worker.wait_idle(30.0)
        outcomes = worker.poll()
    finally:
        worker.stop()

    assert [outcome.error.reason for outcome in outcomes if outcome.error] == [
        "nonzero_exit"
    ]


def test_cancelled_job_never_succeeds(config: EditorConfig, tmp_path: Path) -> None:
    slow = replace(config, scanner_command=python_scanner("import time; time.sleep(10)"))
    worker = ScanWorker(slow)
    try:
        job = worker.submit(tmp_path / "a.md", 1)
        job.cancel()
        worker.wait_idle(30.0)
        outcomes = worker.poll()
    finally:
        worker.stop()

    assert job.cancelled
    assert all(not outcome.ok for outcome in outcomes)
    assert all(outcome.error.reason == "cancelled" for outcome in outcomes)


def test_wait_idle_without_thread_returns() -> None:
    worker = ScanWorker(EditorConfig(base_dir=Path(".")))

    worker.wait_idle(0.01)

    assert worker.running is False


def test_finished_jobs_leave_the_pending_list(
    config: EditorConfig, write_note: Callable[[str, str], Path]
) -> None:
    worker = ScanWorker(config)
    try:
        for generation in range(1, 6):
            worker.submit(write_note("note.md", f"#v{generation}"), generation)
            worker.wait_idle(30.0)
            assert len(worker.poll()) == 1
            assert worker.pending == 0
    finally:
        worker.stop()
