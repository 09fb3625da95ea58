"""Date-partitioned click counter persisted as a single JSON document."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from .errors import LedgerWriteError
from .models import ClickSummary, Ledger

logger = logging.getLogger(__name__)


def utc_today() -> str:
    """Return the current UTC calendar date in ISO form."""
    return datetime.now(timezone.utc).date().isoformat()


def parse_ledger(raw: str) -> Ledger:
    """Parse a serialised ledger, mapping every kind of malformed input to empty."""
    if not raw or not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Ledger content is not valid JSON; treating as empty: %s", exc)
        return {}
    return _coerce_ledger(payload)


def _coerce_ledger(payload: Any) -> Ledger:
    if not isinstance(payload, dict):
        logger.warning(
            "Ledger root must be an object, got %s; treating as empty",
            type(payload).__name__,
        )
        return {}

    ledger: Ledger = {}
    for date_key, counters in payload.items():
        if not isinstance(counters, dict):
            logger.warning("Skipping malformed ledger partition %r", date_key)
            continue
        partition = {}
        for tracking_id, count in counters.items():
            # bool is an int subclass; reject it along with negatives.
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                logger.warning(
                    "Skipping malformed counter %r on %s: %r", tracking_id, date_key, count
                )
                continue
            partition[tracking_id] = count
        ledger[date_key] = partition
    return ledger


def summarize_ledger(ledger: Ledger, date_key: str) -> ClickSummary:
    """Compute click totals for a single date partition."""
    counters = ledger.get(date_key, {})
    return ClickSummary(
        date=date_key, total=sum(counters.values()), unique=len(counters)
    )


class LedgerStore:
    """Whole-document JSON ledger.

    Every mutation reads the full document, changes one counter and writes the
    full document back. Mutations from this process are serialised by a lock;
    separate processes sharing the file still race with last-write-wins.
    """

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def read(self) -> Ledger:
        """Load the ledger; never raises."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Ledger file %s does not exist yet", self.path)
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Unable to read ledger %s: %s", self.path, exc)
            return {}
        return parse_ledger(raw)

    def write(self, ledger: Ledger) -> None:
        """Replace the persisted ledger with ``ledger``."""
        serialised = json.dumps(ledger, indent=2)
        tmp_name = None
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(serialised)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise LedgerWriteError(f"Failed to write ledger {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def increment(self, date_key: str, tracking_id: str) -> int:
        """Add one click for ``tracking_id`` on ``date_key`` and return the new count."""
        return self._update(date_key, tracking_id, lambda count: count + 1)

    def ensure(self, date_key: str, tracking_id: str) -> int:
        """Create a zero counter if absent and return the current count."""
        return self._update(date_key, tracking_id, lambda count: count)

    def summarize(self, date_key: str) -> ClickSummary:
        return summarize_ledger(self.read(), date_key)

    def _update(
        self, date_key: str, tracking_id: str, mutate: Callable[[int], int]
    ) -> int:
        with self._lock:
            ledger = self.read()
            partition = ledger.setdefault(date_key, {})
            partition[tracking_id] = mutate(partition.get(tracking_id, 0))
            self.write(ledger)
            logger.debug(
                "Ledger %s/%s -> %d", date_key, tracking_id, partition[tracking_id]
            )
            return partition[tracking_id]
