"""Secret stripping for text that ends up in the audit log."""

from __future__ import annotations

import re

# Each pattern: (name, compiled regex). The first group, when present, is kept.
_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (
        "URL_CREDENTIALS",
        re.compile(r"(\b[a-z][a-z0-9+.\-]*://)[^/\s:@]+:[^/\s@]+(?=@)", re.IGNORECASE),
    ),
    (
        "SECRET_ARGUMENT",
        re.compile(r"(--(?:token|password|secret|api-key)[= ])\S+", re.IGNORECASE),
    ),
    ("BEARER_TOKEN", re.compile(r"(Bearer\s+)[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)),
    ("GITHUB_TOKEN", re.compile(r"gh[pousr]_[A-Za-z0-9]{36,}")),
    ("GITHUB_PAT", re.compile(r"github_pat_[A-Za-z0-9_]{20,}")),
    ("AWS_KEY", re.compile(r"AKIA[0-9A-Z]{16}")),
]


def redact(text: str) -> str:
    """Replace sensitive values in *text* with ``[REDACTED:PATTERN_NAME]``.

    Prefixes such as the URL scheme or the option name are preserved so
    the redacted text still reads naturally.
    """
    for name, pattern in _PATTERNS:
        marker = f"[REDACTED:{name}]"
        if pattern.groups:
            text = pattern.sub(lambda m, marker=marker: m.group(1) + marker, text)
        else:
            text = pattern.sub(marker, text)
    return text


def redact_arguments(arguments: list[str] | tuple[str, ...]) -> list[str]:
    """Redact each pass-through plugin argument.

    A value following a bare ``--token``/``--password`` style option is
    redacted as a whole.
    """
    result: list[str] = []
    previous = ""
    for arg in arguments:
        if re.fullmatch(r"--(?:token|password|secret|api-key)", previous, re.IGNORECASE):
            result.append("[REDACTED:SECRET_ARGUMENT]")
        else:
            result.append(redact(arg))
        previous = arg
    return result
