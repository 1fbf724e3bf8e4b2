"""Console logging with rich."""

import datetime
import inspect
import logging
import os
from typing import Optional, Union

import rich.console
import rich.theme

from .typing import LogKwargsT

_THEME = dict(
    default="white",
    title="bold green",
    asctime="green",
    prefix="bold cyan",
    debug="dim",
    info="",
    warning="magenta",
    error="red",
)

# Short names for the emojis we use everywhere
_EMOJIS = dict(
    cache="✅",
    skip="⏩",
    override="❌",
    toolbox="🧰",
)


def _env_flag(name: str) -> Optional[bool]:
    val = os.getenv(name, None)
    if val is None:
        return None
    return val.lower() in ("true", "1")


class _MTPLogger:
    """Print pipeline messages to the terminal, one line per message."""

    def __init__(self):
        self._level = logging.INFO
        self._rich_console = None

    @property
    def _console(self) -> rich.console.Console:
        # Created on first use so that pytest can capture the output
        if self._rich_console is None:
            self._rich_console = rich.console.Console(
                soft_wrap=True,
                force_terminal=_env_flag("MNE_TUTORIAL_PIPELINE_FORCE_TERMINAL"),
                legacy_windows=_env_flag("MNE_TUTORIAL_PIPELINE_LEGACY_WINDOWS"),
                theme=rich.theme.Theme(_THEME),
            )
        return self._rich_console

    @property
    def level(self) -> int:
        return self._level

    @level.setter
    def level(self, level) -> None:
        self._level = int(level)

    def title(self, title: str) -> None:
        self._console.rule(
            title=f"[title]┌────────┬ {title}[/]",
            characters="─",
            style="title",
            align="left",
        )

    def end(self, msg: str = "") -> None:
        self._console.print(f"[title]└────────┴ {msg}[/]")

    def debug(self, msg: str, *, extra: Optional[dict] = None) -> None:
        self._emit("debug", msg, **(extra or {}))

    def info(self, msg: str, *, extra: Optional[dict] = None) -> None:
        self._emit("info", msg, **(extra or {}))

    def warning(self, msg: str, *, extra: Optional[dict] = None) -> None:
        self._emit("warning", msg, **(extra or {}))

    def error(self, msg: str, *, extra: Optional[dict] = None) -> None:
        self._emit("error", msg, **(extra or {}))

    def _emit(
        self,
        kind: str,
        msg: str,
        subject: Optional[Union[str, int]] = None,
        emoji: str = "",
    ) -> None:
        if logging.getLevelName(kind.upper()) < self.level:
            return
        prefix = "".join(f"{part} " for part in (emoji, subject) if part)
        stamp = datetime.datetime.now().strftime("│%H:%M:%S│")
        self._console.print(f"[asctime]{stamp} [/][prefix]{prefix}[/][{kind}]{msg}[/]")


logger = _MTPLogger()


def gen_log_kwargs(
    message: str,
    *,
    subject: Optional[Union[str, int]] = None,
    emoji: str = "⏳️",
) -> LogKwargsT:
    """Build the keyword arguments of a logger call.

    When ``subject`` is not given, it is taken from the local variables of the
    calling function, so that step functions don't have to pass it around.
    """
    if subject is None:
        caller = inspect.currentframe().f_back
        subject = caller.f_locals.get("subject", None)
        if not isinstance(subject, (str, int)):
            subject = None
    extra = {"emoji": _EMOJIS.get(emoji, emoji)}
    if subject is not None:
        extra["subject"] = f"sub-{subject}"
    kwargs: LogKwargsT = {"msg": message, "extra": extra}
    return kwargs


def _is_testing() -> bool:
    return os.getenv("_MNE_TUTORIAL_PIPELINE_TESTING", "") == "true"
