"""
Day bucket persistence.

Each crawl target has its own directory; every calendar day on which new
replies were discovered gets one pretty-printed JSON file in it:

    <data_dir>/<user_name>/
        2024-01-15.json
        2024-01-16.json
        lastPubDate.txt

An absent or empty file is an empty bucket. Writes go to a temporary file
first and are then renamed into place so a crash never leaves a truncated
bucket behind.
"""

import logging
from pathlib import Path
from typing import List

import orjson

from .errors import ParseError, PersistenceError
from .models import DayBucket

logger = logging.getLogger(__name__)


class DayBucketStore:
    """
    Reads and writes the day buckets of one crawl target.

    Usage:
        store = DayBucketStore(Path("data/alice"))
        bucket = store.load("2024-01-15")
        # ... merge replies ...
        store.save(bucket)
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def ensure_dir(self) -> None:
        """Create the bucket directory if it doesn't exist."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Could not create {self.directory}: {e}") from e

    def path_for(self, day: str) -> Path:
        return self.directory / f"{day}.json"

    def load(self, day: str) -> DayBucket:
        """
        Load the bucket of a day.

        Returns:
            The stored bucket, or an empty one if no file exists or it is empty

        Raises:
            PersistenceError: If the file exists but cannot be read or parsed
        """
        path = self.path_for(day)
        if not path.exists():
            return DayBucket(day=day)

        try:
            raw = path.read_bytes()
        except OSError as e:
            raise PersistenceError(f"Could not read {path}: {e}") from e

        if not raw.strip():
            return DayBucket(day=day)

        try:
            data = orjson.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("top level is not an object")
            return DayBucket.from_dict(day, data)
        except (orjson.JSONDecodeError, ParseError, ValueError, KeyError, TypeError) as e:
            raise PersistenceError(f"Corrupt day bucket {path}: {e}") from e

    def save(self, bucket: DayBucket) -> bool:
        """
        Write a bucket to disk.

        Empty buckets are not written.

        Returns:
            True if the file was written

        Raises:
            PersistenceError: If the file cannot be written
        """
        if not bucket.topics:
            return False

        path = self.path_for(bucket.day)
        try:
            self.ensure_dir()
            tmp = path.with_suffix(".tmp")
            tmp.write_bytes(orjson.dumps(bucket.to_dict(), option=orjson.OPT_INDENT_2))
            tmp.replace(path)
        except OSError as e:
            raise PersistenceError(f"Could not write {path}: {e}") from e

        logger.info("Saved %d topics (%d replies) to %s",
                    len(bucket), bucket.reply_count, path)
        return True

    def days(self) -> List[str]:
        """List the days that have a stored bucket, oldest first."""
        if not self.directory.exists():
            return []
        return sorted(path.stem for path in self.directory.glob("*.json"))
