"""Helpers shared by web routes."""

import hashlib


def _compute_etag(content: str) -> str:
    """Compute an ETag header value from content.

    Returns a quoted MD5 hash of the content suitable for use as an ETag header.
    """
    content_hash = hashlib.md5(content.encode()).hexdigest()
    return f'"{content_hash}"'
