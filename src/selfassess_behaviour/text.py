# selfassess_behaviour/text.py
from __future__ import annotations

import re
from typing import Optional

_TAG_RE = re.compile(r"<[^>]*>")
_BLANK_ENTITY_RE = re.compile(r"&nbsp;|&#160;|&#xa0;", re.IGNORECASE)

ELLIPSIS = "..."


def html_is_blank(text: Optional[str]) -> bool:
    """True when `text` has no visible content: None, whitespace, bare tags or non-breaking spaces."""
    if text is None:
        return True
    visible = _BLANK_ENTITY_RE.sub(" ", _TAG_RE.sub("", text))
    return not visible.replace("\u00a0", " ").strip()


def normalize_comment(text: Optional[str]) -> str:
    if html_is_blank(text):
        return ""
    return str(text)


def shorten_text(text: str, length: int = 200) -> str:
    """
    Truncate `text` to at most `length` characters, ellipsis included.
    Cuts on the last whitespace inside the window when there is one.
    """
    if len(text) <= length:
        return text
    if length <= len(ELLIPSIS):
        return text[:length]

    window = text[: length - len(ELLIPSIS)]
    cut = window.rfind(" ")
    if cut > 0:
        window = window[:cut]
    return window.rstrip() + ELLIPSIS
