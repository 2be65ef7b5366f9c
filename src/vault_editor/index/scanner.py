"""
Bridge between the editor and the external scanner process.

``ScannerBridge`` runs one scan and writes its result to the store.
``ScanWorker`` runs scans on a background thread so saving never waits on
the scanner; it only hands results back, the session loop decides whether
they are still current and applies them.
"""

from __future__ import annotations

import json
import queue
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from vault_editor.config import EditorConfig
from vault_editor.errors import ScanFailure, StoreWriteConflict
from vault_editor.runtime import telemetry

from .models import ScanResult
from .store import MetadataStore, retry_on_conflict

LOGGER_NAME = "vault_editor.index"


def build_command(command: Sequence[str], path: Path, base_dir: Path) -> list[str]:
    return [*command, str(path), str(base_dir)]


def parse_output(path: Path, stdout: str) -> ScanResult:
    """Decode the scanner's JSON object; anything malformed is a failure."""

    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as exc:
        raise ScanFailure(str(path), f"bad_output: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ScanFailure(str(path), "bad_output: expected a JSON object")

    tags = payload.get("tags", [])
    links = payload.get("links", [])
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ScanFailure(str(path), "bad_output: 'tags' must be a list of strings")
    if not isinstance(links, list) or not all(isinstance(l, str) for l in links):
        raise ScanFailure(str(path), "bad_output: 'links' must be a list of strings")
    return ScanResult(path=str(path), tags=tuple(tags), links=tuple(links))


def _check_exit(path: Path, returncode: int, stderr: str) -> None:
    if returncode != 0:
        raise ScanFailure(
            str(path), "nonzero_exit", returncode=returncode, stderr=stderr or ""
        )


class ScannerBridge:
    """Synchronous scan + store update for one vault."""

    def __init__(self, config: EditorConfig, store: MetadataStore):
        self.config = config
        self.store = store

    @property
    def command(self) -> tuple[str, ...]:
        return tuple(self.config.scanner_command)

    def scan(self, path: str | Path) -> ScanResult:
        target = Path(path)
        argv = build_command(self.command, target, self.config.base_dir)
        with telemetry.span(
            "scanner::scan", component="scanner", metadata={"path": str(target)}
        ):
            try:
                completed = subprocess.run(
                    argv,
                    capture_output=True,
                    text=True,
                    timeout=self.config.scan_timeout_s,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise ScanFailure(str(target), "timeout") from exc
            except OSError as exc:
                raise ScanFailure(str(target), f"launch_failed: {exc}") from exc
            _check_exit(target, completed.returncode, completed.stderr)
            return parse_output(target, completed.stdout)

    def apply(self, result: ScanResult) -> int:
        """Store ``result``; one retry on a write conflict, then give up."""

        try:
            file_id = retry_on_conflict(
                lambda: self._apply_once(result), operation=f"apply_scan {result.path}"
            )
        except StoreWriteConflict as exc:
            raise ScanFailure(result.path, f"store_conflict: {exc}") from exc
        telemetry.record_event(
            "scan.applied",
            data={
                "path": result.path,
                "tags": len(result.tags),
                "links": len(result.links),
            },
        )
        return file_id

    def _apply_once(self, result: ScanResult) -> int:
        with telemetry.span(
            "scanner::apply", component="scanner", metadata={"path": result.path}
        ):
            return self.store.apply_scan(result.path, result.tags, result.links)

    def sync(self, path: str | Path) -> int:
        return self.apply(self.scan(path))


@dataclass
class ScanOutcome:
    path: str
    generation: int
    result: Optional[ScanResult] = None
    error: Optional[ScanFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None


@dataclass
class ScanJob:
    """One submitted scan; ``cancel`` stops it whether queued or running."""

    path: Path
    generation: int
    _cancelled: threading.Event = field(default_factory=threading.Event, repr=False)
    _finished: threading.Event = field(default_factory=threading.Event, repr=False)
    _process: Optional[subprocess.Popen] = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def finished(self) -> bool:
        """The worker is done with this job, whatever the outcome."""

        return self._finished.is_set()

    def cancel(self) -> None:
        self._cancelled.set()
        with self._lock:
            process = self._process
        if process is not None and process.poll() is None:
            process.kill()

    def _attach(self, process: subprocess.Popen) -> bool:
        with self._lock:
            self._process = process
        return not self.cancelled


_STOP = object()


class ScanWorker:
    """Background scanner thread; results are collected with ``poll``."""

    def __init__(self, config: EditorConfig, *, name: str = "vault-scan-worker"):
        self.config = config
        self._jobs: "queue.Queue[object]" = queue.Queue()
        self._outcomes: "queue.Queue[ScanOutcome]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._name = name
        self._pending: list[ScanJob] = []

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def submit(self, path: str | Path, generation: int) -> ScanJob:
        self.start()
        job = ScanJob(path=Path(path), generation=generation)
        self._pending.append(job)
        self._jobs.put(job)
        telemetry.record_event(
            "scan.submitted", data={"path": str(path), "generation": generation}
        )
        return job

    def poll(self) -> list[ScanOutcome]:
        """Finished scans since the last poll, oldest first."""

        outcomes: list[ScanOutcome] = []
        while True:
            try:
                outcomes.append(self._outcomes.get_nowait())
            except queue.Empty:
                break
        self._pending = [
            job for job in self._pending if not (job.cancelled or job.finished)
        ]
        return outcomes

    @property
    def pending(self) -> int:
        """Jobs submitted but not yet collected by ``poll``."""

        return len(self._pending)

    def cancel_all(self) -> None:
        for job in self._pending:
            job.cancel()
        self._pending.clear()

    def stop(self, timeout: float = 2.0) -> None:
        self.cancel_all()
        if self._thread is None:
            return
        self._jobs.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def wait_idle(self, timeout: Optional[float] = None) -> None:
        """Block until every submitted job was processed (tests, shutdown)."""

        if not self.running:
            return
        done = threading.Event()
        self._jobs.put(done)
        done.wait(timeout)

    def _run(self) -> None:
        while True:
            item = self._jobs.get()
            if item is _STOP:
                return
            if isinstance(item, threading.Event):
                item.set()
                continue
            if not isinstance(item, ScanJob):
                telemetry.get_logger(LOGGER_NAME).warning(
                    f"scan worker ignored {item!r}"
                )
                continue
            try:
                if not item.cancelled:
                    self._outcomes.put(self._execute(item))
            finally:
                item._finished.set()

    def _execute(self, job: ScanJob) -> ScanOutcome:
        path = str(job.path)
        argv = build_command(self.config.scanner_command, job.path, self.config.base_dir)
        try:
            process = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            return ScanOutcome(
                path, job.generation, error=ScanFailure(path, f"launch_failed: {exc}")
            )

        if not job._attach(process):
            process.kill()
            process.communicate()
            return ScanOutcome(path, job.generation, error=ScanFailure(path, "cancelled"))

        try:
            stdout, stderr = process.communicate(timeout=self.config.scan_timeout_s)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            return ScanOutcome(path, job.generation, error=ScanFailure(path, "timeout"))

        if job.cancelled:
            return ScanOutcome(path, job.generation, error=ScanFailure(path, "cancelled"))
        try:
            _check_exit(job.path, process.returncode, stderr)
            result = parse_output(job.path, stdout)
        except ScanFailure as exc:
            telemetry.get_logger(LOGGER_NAME).warning(
                f"scan failed for {path}: {exc.reason}"
            )
            return ScanOutcome(path, job.generation, error=exc)
        return ScanOutcome(path, job.generation, result=result)


__all__ = [
    "ScannerBridge",
    "ScanWorker",
    "ScanJob",
    "ScanOutcome",
    "build_command",
    "parse_output",
]
