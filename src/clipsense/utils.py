import hashlib

from clipsense.config import DATA_DIR, MAX_CONTENT_LENGTH, PREVIEW_LENGTH, TRUNCATION_MARKER
from clipsense.models import ClipEntry

TYPE_BADGES = {
    "url": "🔗",
    "email": "✉️",
    "phone": "📞",
    "color": "🎨",
    "json": "{}",
    "code": "⌨️",
    "coordinates": "📍",
    "date": "📅",
}


def compute_hash(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def truncate_content(content: str, max_len: int = MAX_CONTENT_LENGTH) -> tuple[str, bool]:
    """Cut content to ``max_len`` characters plus the marker.

    Returns the (possibly shortened) text and whether it was cut.
    """
    if len(content) <= max_len:
        return content, False
    return content[:max_len] + TRUNCATION_MARKER, True


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def display_preview(entry: ClipEntry, max_len: int = PREVIEW_LENGTH) -> str:
    """One-line title for a clip: a lock for sensitive clips, else a type badge."""
    text = truncate_text(entry.content, max_len)
    if entry.is_sensitive:
        return f"🔒 {text}"
    badge = TYPE_BADGES.get(entry.primary_type or "")
    return f"{badge} {text}" if badge else text


def ensure_dirs() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
