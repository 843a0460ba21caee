"""
L1 Domain — Script argument validation and quoting (pure).

Every value interpolated into a generated elevation script passes
through here. Home directory, user name and login name come from the
environment and are attacker-influenceable; paths may contain quotes.

No I/O, no subprocess.
"""

from __future__ import annotations

from bwpatch.core.services.patcher.domain.errors import InvalidInput

_FORBIDDEN = ("\n", "\r", "\0")

# PowerShell treats the typographic single quotes as quote characters too.
_PS_QUOTES = ("'", "‘", "’", "‚", "‛")


def reject_unsafe(value: str, label: str = "value") -> str:
    """Return ``value`` unchanged, or raise ``InvalidInput``.

    Newline, carriage return and NUL can terminate a quoted string in
    every script syntax we generate, so they are refused outright
    rather than escaped.
    """
    if not isinstance(value, str):
        raise InvalidInput(f"{label} must be a string")
    for ch in _FORBIDDEN:
        if ch in value:
            raise InvalidInput(f"{label} contains a forbidden control character")
    return value


def quote_posix(value: str, label: str = "value") -> str:
    """Single-quote ``value`` for bash (``'`` → ``'\\''``)."""
    reject_unsafe(value, label)
    return "'" + value.replace("'", "'\\''") + "'"


def quote_powershell(value: str, label: str = "value") -> str:
    """Single-quote ``value`` for PowerShell (quote characters doubled)."""
    reject_unsafe(value, label)
    escaped = value
    for q in _PS_QUOTES:
        escaped = escaped.replace(q, q + q)
    return "'" + escaped + "'"
