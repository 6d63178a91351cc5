import logging
import webbrowser
from dataclasses import dataclass, field
from typing import Callable

import rumps

from clipsense import __version__
from clipsense.config import APP_NAME, DB_PATH, EXPIRY_CHECK_INTERVAL, MENU_DISPLAY_COUNT
from clipsense.models import ClipEntry, SearchFilters, Suggestion
from clipsense.monitor import ClipboardMonitor
from clipsense.redact import get_sensitivity_summary
from clipsense.service import ClipSenseService
from clipsense.storage import StorageManager
from clipsense.utils import display_preview, ensure_dirs

logger = logging.getLogger(__name__)

ACTION_KEY_PREFIX = "clipsense_action_"


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering.

    An item with children renders as a submenu; ``key`` ties a clickable
    item to the action registered for it.
    """

    title: str
    callback: Callable | None = None
    key: str | None = None
    children: list["MenuItemSpec | None"] = field(default_factory=list)


class ClipSenseApp(rumps.App):
    def __init__(self):
        super().__init__(APP_NAME, title="📋", quit_button=None)
        self._init_app()

    def _init_app(self) -> None:
        ensure_dirs()
        self._storage = StorageManager(DB_PATH)
        self._monitor = ClipboardMonitor(self._storage, on_change=self._mark_dirty)
        self._service = ClipSenseService(self._storage, self._monitor)
        self._actions: dict[str, Callable[[], None]] = {}
        self._dirty = False
        self._build_menu()
        self._monitor.start()

    def _mark_dirty(self) -> None:
        # Called from the monitor thread; the menu is rebuilt on the main thread.
        self._dirty = True

    @rumps.timer(1)
    def _refresh_if_dirty(self, _sender) -> None:
        if self._dirty:
            self._dirty = False
            self._build_menu()

    @rumps.timer(EXPIRY_CHECK_INTERVAL)
    def _expire_sensitive(self, _sender) -> None:
        try:
            if self._service.expire_sensitive():
                self._build_menu()
        except Exception:
            logger.exception("Error expiring sensitive clips")

    def _build_menu(self) -> None:
        self._show(self._compute_menu_specs())

    def _show(self, specs: list[MenuItemSpec | None]) -> None:
        self.menu.clear()
        self.menu = [self._render_single_spec(spec) for spec in specs]

    def _compute_menu_specs(self) -> list[MenuItemSpec | None]:
        """Compute the main menu. Pure logic, no rumps dependency."""
        self._actions.clear()
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"{APP_NAME} v{__version__}"),
            None,
            MenuItemSpec("Search...", callback=self._on_search),
            None,
        ]

        entries = self._service.get_history(limit=MENU_DISPLAY_COUNT)
        favorites = self._service.search("", SearchFilters(is_favorite=True))[:MENU_DISPLAY_COUNT]
        if favorites:
            specs.append(MenuItemSpec("⭐ Favorites", children=self._compute_entry_specs(favorites)))
            specs.append(None)

        if entries:
            specs.extend(self._compute_entry_specs(entries))
        else:
            specs.append(MenuItemSpec("(No clipboard history)"))

        specs.extend([
            None,
            MenuItemSpec("Clear History", callback=self._on_clear),
            MenuItemSpec(f"Quit {APP_NAME}", callback=self._on_quit),
        ])
        return specs

    def _compute_search_results_specs(self, query: str, results: list[ClipEntry]) -> list[MenuItemSpec | None]:
        self._actions.clear()
        return [
            MenuItemSpec(f'Search: "{query}" ({len(results)} results)'),
            None,
            MenuItemSpec("Show All", callback=lambda _: self._build_menu()),
            None,
            *self._compute_entry_specs(results),
            None,
            MenuItemSpec(f"Quit {APP_NAME}", callback=self._on_quit),
        ]

    def _compute_entry_specs(self, entries: list[ClipEntry]) -> list[MenuItemSpec | None]:
        # rumps keys menu items by title, so repeated previews get a counter.
        specs: list[MenuItemSpec | None] = []
        seen: dict[str, int] = {}
        for entry in entries:
            spec = self._compute_entry_spec(entry)
            seen[spec.title] = seen.get(spec.title, 0) + 1
            if seen[spec.title] > 1:
                spec.title = f"{spec.title} ({seen[spec.title]})"
            specs.append(spec)
        return specs

    def _compute_entry_spec(self, entry: ClipEntry) -> MenuItemSpec:
        """A clip as a submenu: copy, favorite, delete, then its suggestions."""
        favorite_label = "Remove from Favorites" if entry.is_favorite else "Add to Favorites"
        children: list[MenuItemSpec | None] = [
            self._action_spec("Copy", lambda: self._copy(entry.content, self._masked_note(entry))),
            self._action_spec(favorite_label, lambda: self._toggle_favorite(entry.id)),
            self._action_spec("Delete", lambda: self._delete(entry.id)),
        ]

        suggestion_specs = []
        for suggestion in self._service.get_suggestions(entry.id):
            action = self._suggestion_action(suggestion)
            if action is not None:
                suggestion_specs.append(self._action_spec(suggestion.label, action))
        if suggestion_specs:
            children.append(None)
            children.extend(suggestion_specs)

        return MenuItemSpec(display_preview(entry), children=children)

    def _action_spec(self, title: str, action: Callable[[], None]) -> MenuItemSpec:
        key = f"{ACTION_KEY_PREFIX}{len(self._actions)}"
        self._actions[key] = action
        return MenuItemSpec(title, callback=self._on_action, key=key)

    def _suggestion_action(self, suggestion: Suggestion) -> Callable[[], None] | None:
        """Map a suggestion to something the menu can do, or None to hide it."""
        params = suggestion.params
        if suggestion.action_name == "copyText" and params.get("text"):
            return lambda: self._copy(str(params["text"]))
        if suggestion.action_name == "openUrl":
            url = str(params.get("url", ""))
            if "://" not in url:
                url = f"https://{url}"
            return lambda: webbrowser.open(url)
        if suggestion.action_name == "composeEmail":
            return lambda: webbrowser.open(f"mailto:{params.get('email', '')}")
        return None

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        if spec is None:
            return None

        if spec.children:
            submenu = rumps.MenuItem(spec.title)
            for child in spec.children:
                submenu.add(self._render_single_spec(child))
            return submenu

        item = rumps.MenuItem(spec.title, callback=spec.callback)
        if spec.key is not None:
            item._id = spec.key
        return item

    def _on_action(self, sender) -> None:
        action = self._actions.get(getattr(sender, "_id", ""))
        if action is None:
            return
        try:
            action()
        except Exception:
            logger.exception("Error running menu action")

    @staticmethod
    def _masked_note(entry: ClipEntry) -> str:
        if not entry.is_sensitive:
            return ""
        return get_sensitivity_summary(entry.metadata.get("sensitiveTypes", []))

    def _copy(self, content: str, masked: str = "") -> None:
        self._service.copy_to_clipboard(content)
        self._notify(f"Copied to clipboard ({masked} masked)" if masked else "Copied to clipboard")

    def _toggle_favorite(self, entry_id: str) -> None:
        is_favorite = self._service.toggle_favorite(entry_id)
        if is_favorite is None:
            return
        self._notify("Added to favorites" if is_favorite else "Removed from favorites")
        self._build_menu()

    def _delete(self, entry_id: str) -> None:
        if self._service.delete_item(entry_id):
            self._build_menu()

    def _on_search(self, _sender) -> None:
        response = rumps.Window(
            message="Search clipboard history:",
            title=f"{APP_NAME} Search",
            default_text="",
            ok="Search",
            cancel="Cancel",
            dimensions=(300, 24),
        ).run()
        query = response.text.strip() if response.clicked else ""
        if not query:
            return

        results = self._service.search(query)[:MENU_DISPLAY_COUNT]
        if not results:
            rumps.alert(f"{APP_NAME} Search", f'No results for "{query}"')
            return
        self._show(self._compute_search_results_specs(query, results))

    def _notify(self, message: str) -> None:
        if self._service.settings.get().get("showNotifications", True):
            rumps.notification(APP_NAME, "", message, sound=False)

    def _on_clear(self, _sender) -> None:
        if rumps.alert(APP_NAME, "Clear all clipboard history?", ok="Clear", cancel="Cancel"):
            self._service.clear_history()
            self._build_menu()

    def _on_quit(self, _sender) -> None:
        self._monitor.stop()
        self._storage.close()
        rumps.quit_application()
