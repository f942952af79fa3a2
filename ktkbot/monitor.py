"""
The monitor loop: keep a baseline of known events and notify about new ones.

Lifecycle:
    bootstrap()    load the baseline from the events file, or fetch it once
                   from the listing if the file cannot be used
    run_forever()  fetch -> diff -> notify -> replace baseline, forever,
                   sleeping `fetch_interval` seconds between cycles

Error policy:
- TransportError while fetching the listing: skip this cycle
- ExtractionError: propagates (fatal)
- TransportError while notifying: propagates (fatal)
- PersistenceError while saving: logged, the in-memory baseline still advances
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Set

from ktkbot.errors import PersistenceError, TransportError
from ktkbot.model import Event
from ktkbot.notify import Notifier
from ktkbot.scrape import fetch_all_events
from ktkbot.storage import load_events, save_events

logger = logging.getLogger(__name__)


class Monitor:
    def __init__(
        self,
        events_file: str | Path,
        notifier: Notifier,
        fetch_interval: float = 120,
        fetch_all: Callable[[], Set[Event]] = fetch_all_events,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.events_file = Path(events_file)
        self.notifier = notifier
        self.fetch_interval = fetch_interval
        self.fetch_all = fetch_all
        self.sleep = sleep
        self.baseline: Optional[Set[Event]] = None

    # -----------------------------------------------------------------------
    # Bootstrapping
    # -----------------------------------------------------------------------

    def bootstrap(self) -> Set[Event]:
        """
        Establish the baseline.

        A stored baseline is used as-is. If it cannot be loaded, the
        listing is fetched once and the result becomes (and is saved as)
        the baseline, so nothing already listed triggers a notification.
        """
        logger.info("Loading local list of events from %s...", self.events_file)
        try:
            self.baseline = load_events(self.events_file)
            logger.info("Loaded %d events.", len(self.baseline))
            return self.baseline
        except PersistenceError as exc:
            logger.warning("Failed to load local list of events: %s", exc)
            logger.warning("Fetching events and creating new local list at %s instead...", self.events_file)

        self.baseline = self.fetch_all()
        logger.info("Fetched %d events. Writing them to %s...", len(self.baseline), self.events_file)
        self._save()
        return self.baseline

    # -----------------------------------------------------------------------
    # Running
    # -----------------------------------------------------------------------

    def run_cycle(self) -> List[Event]:
        """
        One fetch/diff/notify round. Returns the new events, sorted by time.

        A listing that cannot be fetched leaves the baseline untouched
        and returns no events.
        """
        if self.baseline is None:
            raise RuntimeError("Monitor.bootstrap() must be called before run_cycle()")

        logger.info("Fetching events...")
        try:
            fetched = self.fetch_all()
        except TransportError as exc:
            logger.error("Failed to fetch events: %s", exc)
            logger.info("Skipping this cycle.")
            return []

        logger.info("Fetched %d events. Comparing to local list of events...", len(fetched))
        new_events = sorted(fetched - self.baseline)

        if not new_events:
            logger.info("There are no new events.")
            return []

        logger.info("There are %d new events.", len(new_events))
        self.notifier.notify(new_events)

        # replaced wholesale: events gone from the listing are dropped too
        self.baseline = fetched
        logger.info("Updating local list of events...")
        self._save()
        return new_events

    def run_forever(self) -> None:
        if self.baseline is None:
            self.bootstrap()

        logger.info("Now running.")
        first = True
        while True:
            if not first:
                logger.info("Fetching again in %s seconds...", self.fetch_interval)
                self.sleep(self.fetch_interval)
            first = False
            self.run_cycle()

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _save(self) -> bool:
        try:
            save_events(self.baseline or set(), self.events_file)
        except PersistenceError as exc:
            logger.warning("Failed to save events: %s", exc)
            logger.warning("Continuing without saving events to disk, only storing them in memory.")
            return False
        logger.info("Wrote %d events to %s.", len(self.baseline or ()), self.events_file)
        return True
