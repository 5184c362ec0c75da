"""Validation helpers for decoded payloads."""
import re
from urllib.parse import urlsplit

# RFC 3986 scheme: ALPHA *( ALPHA / DIGIT / "+" / "-" / "." )
_SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.\-]*$')


def is_absolute_url(text: str) -> bool:
    """Return True if text is a well-formed absolute URL.

    A scheme must be present and followed by something: ``https://example.com``
    and ``mailto:a@b.c`` qualify, ``example.com`` and ``hello world`` do not.
    Hierarchical schemes (http, https, ftp, ws, wss) additionally need a host.
    """
    if not isinstance(text, str):
        return False
    candidate = text.strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False

    try:
        parts = urlsplit(candidate)
        # Accessing port validates it (raises ValueError on garbage like :abc)
        parts.port
    except ValueError:
        return False

    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        return False
    if parts.scheme.lower() in ("http", "https", "ftp", "ws", "wss"):
        return bool(parts.hostname)
    return bool(parts.netloc or parts.path or parts.query)
