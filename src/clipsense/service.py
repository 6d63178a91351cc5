"""Request/response surface the menu bar, CLI and any other front end talk to.

Front ends never touch the database or the clipboard directly; they go
through :class:`ClipSenseService`, which keeps every clipboard write on the
self-write-suppressing path.
"""

import logging
from datetime import timedelta
from typing import Any

from clipsense.analyzer import ContentAnalyzer
from clipsense.config import HISTORY_LIMIT, SEARCH_PAGE_SIZE
from clipsense.models import ClipEntry, SearchFilters, Suggestion, Template
from clipsense.monitor import ClipboardMonitor
from clipsense.storage import StorageManager

logger = logging.getLogger(__name__)


class SettingsAPI:
    def __init__(self, storage: StorageManager):
        self._storage = storage

    def get(self) -> dict[str, Any]:
        return self._storage.get_settings()

    def update(self, partial: dict[str, Any]) -> None:
        self._storage.update_settings(partial)


class TemplatesAPI:
    def __init__(self, storage: StorageManager):
        self._storage = storage

    def get_all(self) -> list[Template]:
        return self._storage.get_templates()

    def create(self, name: str, template: str, variables: list[str] | None = None) -> Template:
        return self._storage.create_template(name, template, variables)

    def update(
        self,
        template_id: str,
        name: str | None = None,
        template: str | None = None,
        variables: list[str] | None = None,
    ) -> bool:
        return self._storage.update_template(template_id, name=name, template=template, variables=variables)

    def delete(self, template_id: str) -> bool:
        return self._storage.delete_template(template_id)


class ClipSenseService:
    def __init__(
        self,
        storage: StorageManager,
        monitor: ClipboardMonitor,
        analyzer: ContentAnalyzer | None = None,
    ):
        self._storage = storage
        self._monitor = monitor
        self._analyzer = analyzer or ContentAnalyzer()
        self.settings = SettingsAPI(storage)
        self.templates = TemplatesAPI(storage)

    def get_history(self, limit: int = HISTORY_LIMIT) -> list[ClipEntry]:
        return self._storage.get_recent(limit)

    def get_item(self, entry_id: str) -> ClipEntry | None:
        return self._storage.get_entry(entry_id)

    def delete_item(self, entry_id: str) -> bool:
        return self._storage.delete_entry(entry_id)

    def clear_history(self) -> int:
        return self._storage.delete_all()

    def toggle_favorite(self, entry_id: str) -> bool | None:
        return self._storage.toggle_favorite(entry_id)

    def add_tags(self, entry_id: str, tags: list[str]) -> bool:
        return self._storage.add_tags(entry_id, tags)

    def remove_tags(self, entry_id: str, tags: list[str]) -> bool:
        return self._storage.remove_tags(entry_id, tags)

    def search(self, query: str, filters: SearchFilters | None = None) -> list[ClipEntry]:
        return self._storage.search(query, filters, limit=SEARCH_PAGE_SIZE)

    def copy_to_clipboard(self, content: str) -> None:
        self._monitor.copy_to_clipboard(content)

    def get_suggestions(self, entry_id: str) -> list[Suggestion]:
        entry = self._storage.get_entry(entry_id)
        if entry is None:
            return []
        return self._analyzer.get_suggestions(entry.content, entry.detected_types)

    def expire_sensitive(self) -> int:
        """Soft-delete sensitive clips past their TTL, if the setting is on."""
        settings = self.settings.get()
        if not settings.get("autoDeleteSensitive"):
            return 0
        try:
            ttl_ms = int(settings.get("sensitiveDataTTL", 0))
        except (TypeError, ValueError):
            logger.warning("Invalid sensitiveDataTTL %r, skipping expiry", settings.get("sensitiveDataTTL"))
            return 0
        if ttl_ms <= 0:
            return 0
        return self._storage.expire_sensitive(timedelta(milliseconds=ttl_ms))
