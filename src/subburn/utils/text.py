from __future__ import annotations

import re

_WORD_START = re.compile(r"(^|\s)(\S)")


def transform_text(text: str, mode: str) -> str:
    if mode == "uppercase":
        return text.upper()
    if mode == "lowercase":
        return text.lower()
    if mode == "capitalize":
        # CSS semantics: first letter of each word, rest untouched
        return _WORD_START.sub(lambda m: m.group(1) + m.group(2).upper(), text)
    return text
