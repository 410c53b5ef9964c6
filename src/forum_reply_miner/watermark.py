"""
Watermark tracking for incremental crawling.

The watermark is the publication time of the newest reply accepted so far.
A reply is only "new" when it is strictly newer than the watermark in effect
at the start of a pass. The value lives in memory for the lifetime of the
process and is persisted to ``lastPubDate.txt`` so restarts continue where
the last successful pass stopped.

Losing the file is safe: discovery simply restarts from the configured
start time.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .errors import ParseError, PersistenceError
from .utils import format_timestamp, parse_watermark

logger = logging.getLogger(__name__)

WATERMARK_FILE = "lastPubDate.txt"


class WatermarkStore:
    """
    Monotonic watermark with file persistence.

    Usage:
        store = WatermarkStore(Path("alice"), start=datetime(2024, 1, 1))
        since = store.load()

        # ... run a pass, track the newest pub_time seen ...

        if store.advance(newest):
            store.commit()
    """

    def __init__(self, directory: Path, start: Optional[datetime] = None):
        """
        Args:
            directory: Directory holding the watermark file
            start: Fallback used when no watermark has been persisted yet
        """
        self.path = Path(directory) / WATERMARK_FILE
        self.start = start or datetime.min
        self._current: Optional[datetime] = None

    @property
    def current(self) -> datetime:
        """The watermark in effect (loads it on first access)."""
        if self._current is None:
            return self.load()
        return self._current

    def load(self) -> datetime:
        """
        Read the persisted watermark.

        Falls back to the start time when the file is missing, empty or
        unparsable.
        """
        text = ""
        if self.path.exists():
            try:
                text = self.path.read_text(encoding="utf-8").strip()
            except OSError as e:
                logger.warning("Could not read watermark %s: %s", self.path, e)

        value = self.start
        if text:
            try:
                value = parse_watermark(text)
            except ParseError as e:
                logger.warning("%s, falling back to %s", e, self.start)

        self._current = value
        logger.info("Watermark loaded: %s", value)
        return value

    def advance(self, value: datetime) -> bool:
        """
        Move the in-memory watermark forward.

        Returns:
            True if the watermark moved, False if ``value`` is not newer
        """
        if value <= self.current:
            return False
        self._current = value
        return True

    def commit(self) -> None:
        """
        Overwrite the persisted watermark with the in-memory value.

        Raises:
            PersistenceError: If the file cannot be written
        """
        value = self.current
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            tmp.write_text(format_timestamp(value), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write watermark {self.path}: {e}") from e
        logger.debug("Watermark committed: %s", value)
