import logging
import threading
from collections.abc import Callable

from clipsense.analyzer import ContentAnalyzer
from clipsense.config import ANALYSIS_DEBOUNCE, POLL_INTERVAL, SUPPRESS_DELAY
from clipsense.models import ClipEntry, ContentType
from clipsense.redact import redact
from clipsense.storage import StorageManager

logger = logging.getLogger(__name__)


class Pasteboard:
    """Text access to the macOS general pasteboard."""

    def __init__(self):
        from AppKit import NSPasteboard, NSPasteboardTypeString

        self._pasteboard = NSPasteboard.generalPasteboard()
        self._string_type = NSPasteboardTypeString

    def read(self) -> str:
        text = self._pasteboard.stringForType_(self._string_type)
        return str(text) if text is not None else ""

    def write(self, text: str) -> None:
        self._pasteboard.clearContents()
        self._pasteboard.setString_forType_(text, self._string_type)


class Alarm:
    """A single-slot, cancellable one-shot timer.

    Scheduling while a wake-up is pending replaces it. A timer that fires
    after being replaced or cancelled does nothing.
    """

    def __init__(self, timer_factory: Callable = threading.Timer):
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self, delay: float, callback: Callable, *args) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            timer = self._timer_factory(delay, self._fire, args=(self._generation, callback, args))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self, generation: int, callback: Callable, args: tuple) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        callback(*args)


class ClipboardMonitor:
    """Polls the clipboard and feeds genuine changes through redact → analyze → store.

    A burst of changes inside one debounce window produces a single analysis
    of the latest text. Text written through :meth:`copy_to_clipboard` is
    never recorded as a new clip.
    """

    def __init__(
        self,
        storage: StorageManager,
        analyzer: ContentAnalyzer | None = None,
        clipboard=None,
        on_change: Callable[[], None] | None = None,
        poll_interval: float = POLL_INTERVAL,
        debounce_delay: float = ANALYSIS_DEBOUNCE,
        suppress_delay: float = SUPPRESS_DELAY,
        timer_factory: Callable = threading.Timer,
    ):
        self._storage = storage
        self._analyzer = analyzer or ContentAnalyzer()
        self._clipboard = clipboard if clipboard is not None else Pasteboard()
        self._on_change = on_change
        self._poll_interval = poll_interval
        self._debounce_delay = debounce_delay
        self._suppress_delay = suppress_delay

        self._state_lock = threading.Lock()
        self._pipeline_lock = threading.RLock()
        self._debounce = Alarm(timer_factory)
        self._suppress = Alarm(timer_factory)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False
        self._stopped = False
        self._suppressing = False
        self._last_content = ""
        self._pending_write: str | None = None
        self._pre_write: str | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def analysis_pending(self) -> bool:
        return self._debounce.pending

    def start(self) -> None:
        with self._state_lock:
            if self._running:
                return
            self._running = True
            self._stopped = False
            self._stop_event = threading.Event()
            try:
                self._last_content = self._clipboard.read() or ""
            except Exception:
                logger.exception("Error reading clipboard")
                self._last_content = ""

        self._thread = threading.Thread(target=self._run, name="clipsense-monitor", daemon=True)
        self._thread.start()
        logger.info("Clipboard monitoring started")

    def stop(self) -> None:
        """Stop polling. No analysis or insert happens once this returns."""
        with self._state_lock:
            was_running = self._running
            self._running = False
            self._stopped = True
            self._suppressing = False
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._thread = None
        self._debounce.cancel()
        self._suppress.cancel()
        # Wait out an analysis that was already running when we were called.
        with self._pipeline_lock:
            pass
        if was_running:
            logger.info("Clipboard monitoring stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self._poll_interval):
            self.check_clipboard()

    def check_clipboard(self) -> bool:
        """Run one poll tick. Returns True if an analysis was (re)scheduled."""
        with self._state_lock:
            if self._suppressing:
                return False

            try:
                current = self._clipboard.read() or ""
            except Exception:
                logger.exception("Error reading clipboard")
                return False

            if self._pending_write is not None:
                if current == self._pending_write:
                    # Our own write is now visible.
                    self._pending_write = self._pre_write = None
                    self._last_content = current
                    return False
                if current == self._pre_write:
                    # Our write has not reached the pasteboard yet.
                    return False
                self._pending_write = self._pre_write = None

            if current == self._last_content:
                return False
            if not current.strip():
                return False

            self._last_content = current
            self._debounce.schedule(self._debounce_delay, self._on_debounce, current)
        return True

    def copy_to_clipboard(self, content: str) -> None:
        with self._state_lock:
            self._suppressing = True
            self._pre_write = self._last_content
            self._pending_write = content
            self._last_content = content
            try:
                self._clipboard.write(content)
            finally:
                self._suppress.schedule(self._suppress_delay, self._end_suppression)

    def _end_suppression(self) -> None:
        with self._state_lock:
            self._suppressing = False

    def _on_debounce(self, content: str) -> None:
        with self._pipeline_lock:
            with self._state_lock:
                if self._stopped:
                    return
            try:
                self.process_content(content)
            except Exception:
                logger.exception("Error analyzing and storing clipboard content")

    def process_content(self, content: str) -> str:
        """Redact, classify and store one piece of clipboard text."""
        redacted = redact(content)
        detected_types = self._analyzer.analyze(redacted.content)
        entry = ClipEntry(
            id=None,
            content=redacted.content,
            content_type=ContentType.TEXT,
            detected_types=detected_types,
            metadata=redacted.metadata(),
        )
        entry_id = self._storage.add_entry(entry)
        logger.info("Clipboard item saved: %s (%d types detected)", entry.content_type.value, len(detected_types))

        if self._on_change:
            self._on_change()
        return entry_id
