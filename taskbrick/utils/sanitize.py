"""
Text sanitizing for user-provided free text.
"""
import html
import re

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)


def strip_tags(value: str) -> str:
    """
    Remove HTML markup, keeping the visible text.

    Script and style blocks are dropped with their content. Entities are
    unescaped first so encoded tags like &lt;b&gt; are removed as well.
    """
    if not value:
        return value
    text = html.unescape(value)
    text = _SCRIPT_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    return text.strip()
