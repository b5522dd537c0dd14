from __future__ import annotations

import re

_CDATA_OPEN = "<![CDATA["
_CDATA_CLOSE = "]]>"

# applied in this order
_NAMED_ENTITIES = [
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&#x27;", "'"),
    ("&apos;", "'"),
]

_DEC_ENTITY_RE = re.compile(r"&#(\d+);")
_HEX_ENTITY_RE = re.compile(r"&#[xX]([0-9a-fA-F]+);")

_SCRIPT_STYLE_RE = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_BLOCK_BREAK_RE = re.compile(r"<br\s*/?>|</(?:p|div|li|h[1-6]|tr)\s*>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")

_SPACES_RE = re.compile(r"[ \t]+")
_MANY_NEWLINES_RE = re.compile(r"\n{3,}")


def _codepoint(match: re.Match, base: int) -> str:
    try:
        return chr(int(match.group(1), base))
    except (ValueError, OverflowError):
        return match.group(0)


def strip_cdata(text: str) -> str:
    s = text.strip()
    if s.startswith(_CDATA_OPEN):
        s = s[len(_CDATA_OPEN):]
        if s.endswith(_CDATA_CLOSE):
            s = s[: -len(_CDATA_CLOSE)]
    return s


def decode_entities(text: str) -> str:
    for entity, literal in _NAMED_ENTITIES:
        text = text.replace(entity, literal)
    text = _DEC_ENTITY_RE.sub(lambda m: _codepoint(m, 10), text)
    text = _HEX_ENTITY_RE.sub(lambda m: _codepoint(m, 16), text)
    return text


def decode(text: str | None) -> str:
    """
    Turn an HTML/XML fragment into readable plain text.
    Never raises; None or empty input gives "".
    """
    if not text:
        return ""

    s = strip_cdata(str(text))
    s = decode_entities(s)
    s = _SCRIPT_STYLE_RE.sub("", s)
    s = _BLOCK_BREAK_RE.sub("\n", s)
    s = _TAG_RE.sub("", s)

    s = s.replace("\r\n", "\n").replace("\r", "\n")
    s = _SPACES_RE.sub(" ", s)
    s = "\n".join(line.strip() for line in s.split("\n"))
    s = _MANY_NEWLINES_RE.sub("\n\n", s)
    return s.strip()


def truncate(text: str, limit: int, suffix: str = "") -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + suffix
