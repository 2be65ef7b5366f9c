"""Actions that evaluate Ex-style command lines."""

from __future__ import annotations

from functools import partial
from typing import Callable, Dict, List, MutableMapping, Optional, Protocol, cast

from vault_editor.errors import EditorError
from vault_editor.modes.base_mode import ModeContext, ModeResult

CommandHandler = Callable[[ModeContext, List[str]], ModeResult]


class CommandHost(Protocol):
    """Executes file-level commands; the session implements it.

    Every method returns a short status message or raises ``EditorError``.
    """

    def write(self, *, force: bool = False) -> str: ...

    def quit(self, *, force: bool = False) -> str: ...

    def write_quit(self) -> str: ...

    def edit(self, target: str) -> str: ...

    def new_note(self, name: str) -> str: ...

    def rename(self, name: str) -> str: ...

    def find(self, query: str) -> str: ...


def _command_state(context: ModeContext) -> MutableMapping[str, object]:
    state = cast(
        MutableMapping[str, object], context.extras.setdefault("command_state", {})
    )
    state.setdefault("text", "")
    state.setdefault("history", [])
    return state


def _command_host(context: ModeContext) -> Optional[CommandHost]:
    return cast(Optional[CommandHost], context.extras.get("command_host"))


def submit_command_line(context: ModeContext, match) -> ModeResult:
    del match
    state = _command_state(context)
    raw = str(state.get("text", ""))
    text = raw.strip()
    context.bus.emit("command.submit", text)
    history = state.get("history")
    if isinstance(history, list) and text:
        history.append(text)
    state["text"] = ""
    if not text:
        return ModeResult(consumed=True, switch_to="normal", status="command_empty")
    command, _, rest = text.partition(" ")
    args = rest.split()
    handler = _COMMAND_HANDLERS.get(command)
    if handler is None:
        return _unknown_command(context, command)
    return handler(context, args)


def _unknown_command(context: ModeContext, command: str) -> ModeResult:
    context.bus.emit("command.error", command)
    return ModeResult(
        consumed=True,
        switch_to="normal",
        status="command_error",
        message=f"Not an editor command: {command}",
    )


def _run(
    context: ModeContext,
    status: str,
    message: str,
    call: Callable[[CommandHost], str],
) -> ModeResult:
    host = _command_host(context)
    if host is not None:
        try:
            message = call(host)
        except EditorError as exc:
            context.bus.emit("command.error", str(exc))
            return ModeResult(
                consumed=True,
                switch_to="normal",
                status="command_error",
                message=str(exc),
            )
    return ModeResult(
        consumed=True,
        switch_to="normal",
        status=status,
        message=message,
    )


def _missing_argument(context: ModeContext, command: str) -> ModeResult:
    context.bus.emit("command.error", command)
    return ModeResult(
        consumed=True,
        switch_to="normal",
        status="command_error",
        message=f"Argument required: {command}",
    )


def _handle_echo(context: ModeContext, args: List[str]) -> ModeResult:
    message = " ".join(args)
    context.bus.emit("command.echo", message)
    return ModeResult(
        consumed=True,
        switch_to="normal",
        status="command_echo",
        message=message,
    )


def _handle_write(
    context: ModeContext, args: List[str], *, force: bool = False
) -> ModeResult:
    _emit_write(context, args, force=force)
    status = "command_write_force" if force else "command_write"
    return _run(context, status, "write", lambda host: host.write(force=force))


def _handle_quit(
    context: ModeContext, args: List[str], *, force: bool = False
) -> ModeResult:
    del args
    _emit_quit(context, force=force)
    status = "command_quit_force" if force else "command_quit"
    return _run(context, status, "quit", lambda host: host.quit(force=force))


def _handle_wq(context: ModeContext, args: List[str]) -> ModeResult:
    _emit_write(context, args, force=False)
    _emit_quit(context, force=False)
    return _run(context, "command_wq", "wq", lambda host: host.write_quit())


def _handle_edit(context: ModeContext, args: List[str]) -> ModeResult:
    if not args:
        return _missing_argument(context, "edit")
    target = " ".join(args)
    context.bus.emit("command.edit", {"target": target})
    return _run(context, "command_edit", target, lambda host: host.edit(target))


def _handle_new(context: ModeContext, args: List[str]) -> ModeResult:
    if not args:
        return _missing_argument(context, "new")
    name = " ".join(args)
    context.bus.emit("command.new", {"name": name})
    return _run(context, "command_new", name, lambda host: host.new_note(name))


def _handle_rename(context: ModeContext, args: List[str]) -> ModeResult:
    if not args:
        return _missing_argument(context, "rename")
    name = " ".join(args)
    context.bus.emit("command.rename", {"name": name})
    return _run(context, "command_rename", name, lambda host: host.rename(name))


def _handle_find(context: ModeContext, args: List[str]) -> ModeResult:
    query = " ".join(args)
    context.bus.emit("command.find", {"query": query})
    return _run(context, "command_find", query, lambda host: host.find(query))


def _emit_write(context: ModeContext, args: List[str], *, force: bool) -> None:
    payload = {
        "force": force,
        "args": list(args),
        "snapshot": context.buffer.snapshot(),
    }
    context.bus.emit("command.write", payload)


def _emit_quit(context: ModeContext, *, force: bool) -> None:
    payload = {"force": force}
    context.bus.emit("command.quit", payload)


_COMMAND_HANDLERS: Dict[str, CommandHandler] = {
    "echo": _handle_echo,
    "write": _handle_write,
    "w": _handle_write,
    "write!": partial(_handle_write, force=True),
    "w!": partial(_handle_write, force=True),
    "quit": _handle_quit,
    "q": _handle_quit,
    "quit!": partial(_handle_quit, force=True),
    "q!": partial(_handle_quit, force=True),
    "wq": _handle_wq,
    "x": _handle_wq,
    "exit": _handle_wq,
    "edit": _handle_edit,
    "e": _handle_edit,
    "new": _handle_new,
    "rename": _handle_rename,
    "find": _handle_find,
}


def command_names() -> tuple[str, ...]:
    return tuple(sorted(_COMMAND_HANDLERS))


__all__ = ["CommandHost", "submit_command_line", "command_names"]
