import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import date, datetime, timezone

from errors import StoreError

logger = logging.getLogger(__name__)

STATE_FILE = "state.json"


class JsonFileStore:
    """Key/value store persisted as a single JSON document."""

    def __init__(self, path: str = STATE_FILE):
        self.path = path

    def _read(self) -> dict:
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"cannot read state file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"state file {self.path} does not hold a JSON object")
        return data

    def get(self, key: str):
        return self._read().get(key)

    def set(self, key: str, value):
        data = self._read()
        data[key] = value
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".state-", suffix=".json")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            raise StoreError(f"cannot write state file {self.path}: {e}") from e


@dataclass(frozen=True)
class ChangeDecision:
    should_notify: bool
    new_state: list


def make_key(venue_id: str) -> str:
    return f"{venue_id}_last_notified"


def load_last_notified(store, key: str) -> list[date]:
    entry = store.get(key)
    if entry is None:
        return []
    try:
        return sorted({date.fromisoformat(d) for d in entry["dates"]})
    except (KeyError, TypeError, ValueError) as e:
        raise StoreError(f"stored state for {key} is not a date list: {entry!r}") from e


def detect_change(current: list[date], last_notified: list[date]) -> ChangeDecision:
    """
    Notify only when there is something open and it differs from what was
    last sent. A set that shrinks but stays non-empty is still a change.
    """
    should_notify = bool(current) and set(current) != set(last_notified)
    return ChangeDecision(should_notify=should_notify, new_state=sorted(set(current)))


def save_notified(store, key: str, dates: list[date]):
    store.set(key, {
        "dates": [d.isoformat() for d in sorted(dates)],
        "notified_at": datetime.now(timezone.utc).isoformat(),
    })
    logger.info("Saved %d notified date(s) under %s", len(dates), key)
