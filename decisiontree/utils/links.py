"""URL helpers for CMS edit links."""

from typing import Any


def join_links(*parts: Any) -> str:
    """
    Join URL segments with exactly one slash between them.

    Empty and None segments are skipped; a leading slash on the first segment is kept.
    """
    segments = [str(p) for p in parts if p is not None and str(p) != ""]
    if not segments:
        return ""
    head = segments[0].rstrip("/")
    tail = [s.strip("/") for s in segments[1:]]
    return "/".join([head] + [s for s in tail if s])
