import pytest

from clipsense.models import ClipEntry, ContentType, DetectedType
from clipsense.storage import StorageManager
from clipsense.utils import compute_hash


@pytest.fixture
def storage():
    mgr = StorageManager(db_path=":memory:")
    yield mgr
    mgr.close()


@pytest.fixture
def make_entry():
    """Factory fixture to create ClipEntry instances for testing."""

    def _make_entry(
        text: str = "hello world",
        detected_types: list[DetectedType] | None = None,
        is_favorite: bool = False,
        is_sensitive: bool = False,
        tags: list[str] | None = None,
    ) -> ClipEntry:
        return ClipEntry(
            id=None,
            content=text,
            content_type=ContentType.TEXT,
            detected_types=detected_types or [],
            metadata={
                "originalLength": len(text),
                "isTruncated": False,
                "isSensitive": is_sensitive,
                "contentHash": compute_hash(text),
            },
            is_favorite=is_favorite,
            tags=tags or [],
        )

    return _make_entry


class FakeClipboard:
    """Stands in for the macOS pasteboard."""

    def __init__(self, text: str = ""):
        self.text = text
        self.writes: list[str] = []
        self.error: Exception | None = None

    def read(self) -> str:
        if self.error is not None:
            raise self.error
        return self.text

    def write(self, text: str) -> None:
        self.writes.append(text)
        self.text = text


class FakeTimer:
    """threading.Timer lookalike that only fires when told to."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True
        FakeTimer.created.append(self)

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled and not self.fired:
            self.fired = True
            self.function(*self.args, **self.kwargs)

    created: list["FakeTimer"] = []


@pytest.fixture
def fake_timers():
    FakeTimer.created = []
    yield FakeTimer
    FakeTimer.created = []


@pytest.fixture
def clipboard():
    return FakeClipboard()
