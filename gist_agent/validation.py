"""URL and text checks shared by the aggregation, generation and publishing stages."""

import re
from typing import Optional
from urllib.parse import urlparse

_CITATION_MARKER = re.compile(r"\[[^\]]*\]")
_WHITESPACE = re.compile(r"\s+")


def is_valid_url(url: Optional[str]) -> bool:
    """
    Check that a value is a well-formed http(s) URL.

    Args:
        url: Candidate URL

    Returns:
        True if the URL is non-empty, not the literal "null", parses, uses
        the http or https scheme and names a host
    """
    if not url or not isinstance(url, str):
        return False
    candidate = url.strip()
    if not candidate or candidate.lower() == "null":
        return False
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_usable_source_image(url: Optional[str]) -> bool:
    """A valid image URL that is not a provider placeholder."""
    if not is_valid_url(url):
        return False
    return "placeholder" not in url.lower()


def sanitize_text(text: Optional[str]) -> str:
    """Strip bracketed citation markers and collapse whitespace."""
    if not text:
        return ""
    text = _CITATION_MARKER.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def make_cache_key(prefix: str, topic: str, max_length: int = 100) -> str:
    """
    Build a namespaced cache key from a topic.

    The topic is lowercased, runs of whitespace become a hyphen and the
    normalized topic is cut to ``max_length`` characters.
    """
    normalized = _WHITESPACE.sub("-", topic.strip().lower())[:max_length]
    return f"{prefix}:{normalized}"
