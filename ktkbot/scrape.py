from __future__ import annotations

import argparse
import logging
from typing import Callable, Optional, Set

import requests

from ktkbot.errors import TransportError
from ktkbot.model import Event
from ktkbot.parse import parse_events

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------

LISTING_URL = "https://ktk-tennis.halbooking.dk/newlook/proc_liste.asp"
FIRST_PAGE_URL = f"{LISTING_URL}?pid=01"
SCROLL_PAGE_URL = f"{LISTING_URL}?liste=liste1&forrigetype=203&seson=0&scroll={{scroll}}&pid=01"

REQUEST_TIMEOUT = 30


def events_url(index: int) -> str:
    """
    URL of listing page `index`.

    Page 0 is the plain listing, page i >= 1 is the "scroll" page i - 1.
    """
    if index == 0:
        return FIRST_PAGE_URL
    return SCROLL_PAGE_URL.format(scroll=index - 1)


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def fetch_page(session: requests.Session, url: str, timeout: float = REQUEST_TIMEOUT) -> Set[Event]:
    """
    Fetch one listing page and parse its events.

    Network failures (including non-2xx answers) raise TransportError,
    markup the parser does not understand raises ExtractionError.
    """
    try:
        resp = session.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise TransportError(f"Failed to fetch {url}: {exc}") from exc

    return parse_events(resp.text)


def fetch_all_events(
    session: Optional[requests.Session] = None,
    fetch: Callable[[requests.Session, str], Set[Event]] = fetch_page,
) -> Set[Event]:
    """
    Fetch listing pages until one adds nothing new, and return all events.

    The listing has no "last page" marker: past the end the server keeps
    answering with events already seen. A page whose events are all known
    therefore ends the sweep. There is no page cap.

    All pages go through one session, the scroll pages only work with the
    cookies set by the first page.
    """
    if session is None:
        with requests.Session() as own_session:
            return fetch_all_events(own_session, fetch)

    events: Set[Event] = set()
    index = 0
    while True:
        url = events_url(index)
        logger.debug("Fetching page %d: %s", index, url)
        page = fetch(session, url)
        if page <= events:
            break
        events |= page
        index += 1

    logger.info("Fetched %d events from %d pages", len(events), index + 1)
    return events


# ---------------------------------------------------------------------------
# CLI entry (debugging the scraper without the monitor loop)
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ktkbot.scrape", description="Fetch and print the current KTK listing")
    p.add_argument("--page", type=int, default=None, help="Only fetch this page index")
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.page is not None:
        with requests.Session() as session:
            events = fetch_page(session, events_url(args.page))
    else:
        events = fetch_all_events()

    for event in sorted(events):
        info = ", ".join(event.class_info)
        print(f"{event.id} | {event.timestamp:%d/%m/%Y %H:%M} | {event.title} | {info}")
    print(f"{len(events)} events")


if __name__ == "__main__":
    main()
