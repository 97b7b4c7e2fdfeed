"""Whitespace helpers shared by the chunker, the embedders and the services."""


def normalize_whitespace(text: str) -> str:
    """Collapse every run of whitespace to one space and strip the ends."""
    return " ".join(text.split())


def is_blank(text: str | None) -> bool:
    """Return ``True`` for ``None``, ``""`` or whitespace-only text."""
    return not text or not text.strip()


def truncate(text: str, limit: int = 80) -> str:
    """Flatten *text* to one line and shorten it for log output."""
    text = normalize_whitespace(text)
    return text if len(text) <= limit else text[:limit]
