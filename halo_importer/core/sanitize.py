"""Input sanitization helpers for spreadsheet cells and header names."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")
_FIELD_NAME_RE = re.compile(r"[^a-z0-9]+")


def _strip_control_chars(value: str, *, allow_newlines: bool) -> str:
    cleaned: list[str] = []
    for ch in value:
        if ch == "\n" and allow_newlines:
            cleaned.append(ch)
            continue
        if unicodedata.category(ch) == "Cc":
            continue
        cleaned.append(ch)
    return "".join(cleaned)


def clean_text(value: object, *, allow_newlines: bool = False) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    value = _strip_control_chars(value, allow_newlines=allow_newlines)
    value = value.strip()
    if not allow_newlines:
        value = _WHITESPACE_RE.sub(" ", value)
    else:
        value = "\n".join(line.rstrip() for line in value.split("\n"))
        value = re.sub(r"\n{3,}", "\n\n", value)
    return value


def clean_single_line(value: object) -> str:
    return clean_text(value, allow_newlines=False)


def clean_multiline(value: object) -> str:
    return clean_text(value, allow_newlines=True)


def normalize_field_name(value: object) -> str:
    """Fold a header to a lookup key: 'CF Action-ID' -> 'cfactionid'."""
    return _FIELD_NAME_RE.sub("", clean_single_line(value).casefold())


def is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
