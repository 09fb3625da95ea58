"""Tracking link creation and dereferencing."""

from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional, Protocol
from urllib.parse import quote

from .errors import MissingTargetError
from .ledger import utc_today
from .models import ClickSummary, Ledger, TrackingLink

logger = logging.getLogger(__name__)

ID_BYTES = 4


class CounterStore(Protocol):
    def read(self) -> Ledger: ...

    def write(self, ledger: Ledger) -> None: ...

    def increment(self, date_key: str, tracking_id: str) -> int: ...

    def ensure(self, date_key: str, tracking_id: str) -> int: ...

    def summarize(self, date_key: str) -> ClickSummary: ...


def generate_id() -> str:
    """Return a random tracking id of ``ID_BYTES`` bytes rendered as hex."""
    return secrets.token_hex(ID_BYTES)


def build_track_link(base_url: str, tracking_id: str, target: str) -> str:
    # Same escaping as JavaScript's encodeURIComponent.
    encoded = quote(target, safe="!'()*")
    return f"{base_url.rstrip('/')}/r/{tracking_id}?to={encoded}"


class LinkTracker:
    """Mints tracking ids and counts their clicks.

    The redirect target is carried in the tracking URL rather than stored, so a
    dereference trusts whatever target it is given and does not check that it
    matches the one the id was created for. The id is only a counting bucket.
    """

    def __init__(
        self,
        store: CounterStore,
        today: Callable[[], str] = utc_today,
        id_factory: Callable[[], str] = generate_id,
    ) -> None:
        self.store = store
        self._today = today
        self._id_factory = id_factory

    def create_link(self, target: Optional[str], base_url: str) -> TrackingLink:
        if not target or not isinstance(target, str):
            raise MissingTargetError("Missing target URL")
        tracking_id = self._id_factory()
        self.store.ensure(self._today(), tracking_id)
        link = TrackingLink(
            id=tracking_id,
            target=target,
            track_link=build_track_link(base_url, tracking_id, target),
        )
        logger.info("Created tracking link %s -> %s", tracking_id, target)
        return link

    def dereference(self, tracking_id: str, target: Optional[str]) -> str:
        """Count a click for ``tracking_id`` and return the redirect target."""
        if not target:
            raise MissingTargetError()
        count = self.store.increment(self._today(), tracking_id)
        logger.info("Click on %s (count %d) -> %s", tracking_id, count, target)
        return target
