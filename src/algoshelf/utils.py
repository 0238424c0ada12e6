from datetime import UTC, datetime

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


def now() -> datetime:
    return datetime.now(UTC)


def normalize_tags(tags: list[str]) -> list[str]:
    """Lower-case, strip and de-duplicate tags, keeping their first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)
