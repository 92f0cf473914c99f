"""Plain-text cleanup for keys, titles and excerpts.

Post content is stored as given; markup filtering belongs to whatever
renders it.
"""

import re

_TAG = re.compile(r"<[^>]*>")
_KEY_INVALID = re.compile(r"[^a-z0-9_\-]")
_WHITESPACE = re.compile(r"[\r\n\t ]+")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def sanitize_key(value: str) -> str:
    """Lowercase and drop everything except ``a-z0-9_-``."""
    return _KEY_INVALID.sub("", value.lower())


def sanitize_text_field(value: str) -> str:
    """Strip tags and collapse all whitespace (including newlines)."""
    return _WHITESPACE.sub(" ", _TAG.sub("", value)).strip()


def sanitize_textarea_field(value: str) -> str:
    """Strip tags but keep line breaks."""
    lines = _TAG.sub("", value).replace("\r\n", "\n").split("\n")
    return "\n".join(re.sub(r"[\t ]+", " ", line).strip() for line in lines).strip()


def slugify(value: str) -> str:
    """ASCII slug; names with no ASCII letters or digits keep their lowercased text."""
    return _SLUG_INVALID.sub("-", value.lower()).strip("-") or value.strip().lower()
