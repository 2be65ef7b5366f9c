"""Logging for the editor, backed by telelog.

Everything else in the package goes through four calls: ``get_logger`` for
plain messages, ``record_event`` for one structured ``event::<name>`` line,
``span`` to time a block (and tag it with a component), and ``configure``
which the CLI uses to pick a preset.

The terminal belongs to the editor, so console output is opt-in
(``VAULT_EDITOR_LOG_CONSOLE=1``); point ``VAULT_EDITOR_LOG_FILE`` at a file to
keep a log of a session.
"""

from __future__ import annotations

import os
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, Mapping, Optional, cast

import telelog  # type: ignore[import]

tl = cast(Any, telelog)

ENV_PREFIX = "VAULT_EDITOR_"
ROOT_LOGGER = "vault_editor"
SESSION_LOG_FILE = "vault_editor.log"

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class LogSettings:
    """What telelog is told; built from the environment or a named preset."""

    min_level: str = "INFO"
    console: bool = False
    colored: bool = True
    json: bool = False
    log_file: str = ""
    buffered: bool = False
    buffer_size: int = 2048

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LogSettings":
        env = os.environ if environ is None else environ

        def flag(name: str) -> bool:
            return env.get(f"{ENV_PREFIX}{name}", "").strip().lower() in _TRUE

        try:
            buffer_size = int(env.get(f"{ENV_PREFIX}LOG_BUFFER_SIZE", "") or 2048)
        except ValueError:
            buffer_size = 2048
        return cls(
            min_level=(env.get(f"{ENV_PREFIX}LOG_LEVEL") or "INFO").upper(),
            console=flag("LOG_CONSOLE"),
            colored=not flag("NO_COLOR"),
            json=flag("LOG_JSON"),
            log_file=env.get(f"{ENV_PREFIX}LOG_FILE", "").strip(),
            buffered=flag("LOG_BUFFERED"),
            buffer_size=buffer_size,
        )

    @classmethod
    def preset(
        cls, name: str, environ: Optional[Mapping[str, str]] = None
    ) -> "LogSettings":
        base = cls.from_env(environ)
        key = name.lower()
        if key == "development":
            return replace(base, min_level="DEBUG", console=True, json=False)
        if key == "session":
            return replace(
                base,
                console=False,
                log_file=base.log_file or SESSION_LOG_FILE,
                buffered=True,
            )
        if key == "silent":
            return replace(base, min_level="ERROR", console=False, log_file="")
        raise ValueError(f"Unknown preset '{name}'.")

    def to_config(self) -> Any:
        config = tl.Config()
        config.with_min_level(self.min_level)
        config.with_console_output(self.console)
        if self.console:
            config.with_colored_output(self.colored)
        config.with_json_format(self.json)
        if self.log_file:
            config.with_file_output(self.log_file)
        if self.buffered:
            config.with_buffering(True)
            config.with_buffer_size(self.buffer_size)
        # spans rely on profiling for their timings
        config.with_profiling(True)
        return config


_settings: Optional[LogSettings] = None
_loggers: Dict[str, Any] = {}


def configure(
    *, settings: Optional[LogSettings] = None, preset: Optional[str] = None
) -> LogSettings:
    """Replace the active settings; cached loggers are rebuilt on next use."""

    global _settings
    if settings is not None and preset is not None:
        raise ValueError("Provide either `settings` or `preset`, not both.")
    if preset is not None:
        settings = LogSettings.preset(preset)
    _settings = settings or LogSettings.from_env()
    _loggers.clear()
    return _settings


def active_settings() -> LogSettings:
    return _settings if _settings is not None else configure()


def get_logger(name: Optional[str] = None) -> Any:
    logger_name = name or ROOT_LOGGER
    log = _loggers.get(logger_name)
    if log is None:
        log = tl.Logger.with_config(logger_name, active_settings().to_config())
        _loggers[logger_name] = log
    return log


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, set)):
        return repr(value)
    return str(value)


def _log(log: Any, level: str, message: str, fields: Mapping[str, Any]) -> None:
    """Write ``message`` with key/value fields through ``<level>_with``."""

    name = level.lower()
    structured = getattr(log, f"{name}_with", None)
    pairs = [(str(key), _text(value)) for key, value in fields.items()]
    if structured is not None:
        structured(message, pairs)
        return
    plain = getattr(log, name, None)
    if plain is None:
        raise ValueError(f"Unsupported log level '{level}'.")
    plain(f"{message} {dict(pairs)}")


def record_event(
    name: str,
    *,
    level: str = "info",
    data: Optional[Mapping[str, Any]] = None,
    logger_name: Optional[str] = None,
) -> None:
    fields = {"event": name, **(data or {})}
    _log(get_logger(logger_name), level, f"event::{name}", fields)


@dataclass
class SpanHandle:
    """Yielded by ``span``; fields added here go out with a failure line."""

    logger: Any
    name: str
    component: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = _text(value)

    def fail(self, reason: str) -> None:
        fields: Dict[str, Any] = {"span": self.name, **self.metadata}
        if self.component:
            fields["component"] = self.component
        fields["reason"] = reason
        _log(self.logger, "error", "span::fail", fields)


@contextmanager
def span(
    name: str,
    *,
    logger_name: Optional[str] = None,
    component: Optional[str | bool] = None,
    metadata: Optional[Mapping[str, Any]] = None,
) -> Iterator[SpanHandle]:
    """Time a block with ``logger.profile``.

    ``component=True`` tracks the block as a component named after the span;
    a string names the component. ``metadata`` is attached as logger context
    for the duration of the block. An exception escaping the block is logged
    as ``span::fail`` and re-raised.
    """

    log = get_logger(logger_name)
    component_name: Optional[str] = None
    if component is True:
        component_name = name
    elif isinstance(component, str):
        component_name = component
    handle = SpanHandle(logger=log, name=name, component=component_name)
    with ExitStack() as stack:
        for key, value in (metadata or {}).items():
            handle.add_metadata(key, value)
            log.add_context(key, handle.metadata[key])
            stack.callback(log.remove_context, key)
        if component_name:
            stack.enter_context(log.track_component(component_name))
        stack.enter_context(log.profile(name))
        try:
            yield handle
        except Exception as exc:
            handle.fail(str(exc))
            raise


__all__ = [
    "LogSettings",
    "SpanHandle",
    "active_settings",
    "configure",
    "get_logger",
    "record_event",
    "span",
]
