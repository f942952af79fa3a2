"""
Unit tests for paging through the listing.

Paging contract:
- page 0 uses the plain URL, page i >= 1 uses scroll index i - 1
- paging stops at the first page whose events are all known already
- every page of one sweep goes through the same session
"""

import unittest
from datetime import datetime
from unittest.mock import MagicMock, Mock, patch

import requests

from ktkbot.errors import FormatError, TransportError
from ktkbot.model import LISTING_TZ, Event
from ktkbot.scrape import FIRST_PAGE_URL, events_url, fetch_all_events, fetch_page


def _ev(event_id: str, day: int = 1) -> Event:
    return Event(event_id, event_id.upper(), datetime(2021, 6, day, 10, 0, tzinfo=LISTING_TZ))


class FakeListing:
    """
    Stands in for fetch_page: serves a fixed list of pages and records calls.
    Indexes past the end repeat the last page, like the real server.
    """

    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def __call__(self, session, url):
        self.calls.append((session, url))
        index = len(self.calls) - 1
        return set(self.pages[min(index, len(self.pages) - 1)])


class TestEventsUrl(unittest.TestCase):
    def test_first_page(self) -> None:
        self.assertEqual(events_url(0), FIRST_PAGE_URL)
        self.assertNotIn("scroll=", events_url(0))

    def test_scroll_pages(self) -> None:
        self.assertIn("scroll=0&", events_url(1))
        self.assertIn("scroll=4&", events_url(5))
        self.assertTrue(events_url(1).startswith("https://ktk-tennis.halbooking.dk/newlook/proc_liste.asp?"))


class TestFetchAll(unittest.TestCase):
    def test_stops_at_redundant_page(self) -> None:
        a, b, c, d = _ev("a"), _ev("b"), _ev("c"), _ev("d")
        listing = FakeListing([{a, b}, {c, d}, {b, c}, {_ev("never")}])
        session = Mock()

        events = fetch_all_events(session, listing)

        self.assertEqual(events, {a, b, c, d})
        self.assertEqual(len(listing.calls), 3)
        self.assertEqual([url for _, url in listing.calls], [events_url(0), events_url(1), events_url(2)])

    def test_same_session_for_all_pages(self) -> None:
        listing = FakeListing([{_ev("a")}, {_ev("b")}, {_ev("a")}])
        session = Mock()

        fetch_all_events(session, listing)

        self.assertTrue(all(s is session for s, _ in listing.calls))

    def test_partial_overlap_continues(self) -> None:
        a, b, c = _ev("a"), _ev("b"), _ev("c")
        listing = FakeListing([{a, b}, {b, c}, {a}])

        events = fetch_all_events(Mock(), listing)

        self.assertEqual(events, {a, b, c})
        self.assertEqual(len(listing.calls), 3)

    def test_empty_first_page(self) -> None:
        listing = FakeListing([set()])
        self.assertEqual(fetch_all_events(Mock(), listing), set())
        self.assertEqual(len(listing.calls), 1)

    @patch("ktkbot.scrape.requests.Session")
    def test_own_session_per_sweep(self, mock_session_cls) -> None:
        created = []

        def new_session():
            session = MagicMock()
            session.__enter__.return_value = session
            created.append(session)
            return session

        mock_session_cls.side_effect = new_session

        first = FakeListing([{_ev("a")}, {_ev("b")}, {_ev("a")}])
        fetch_all_events(fetch=first)

        self.assertEqual(len(created), 1)
        self.assertEqual(len(first.calls), 3)
        self.assertTrue(all(s is created[0] for s, _ in first.calls))
        created[0].__exit__.assert_called_once()

        second = FakeListing([{_ev("a")}, {_ev("a")}])
        fetch_all_events(fetch=second)

        self.assertEqual(len(created), 2)
        self.assertIsNot(created[0], created[1])
        self.assertTrue(all(s is created[1] for s, _ in second.calls))
        created[1].__exit__.assert_called_once()

    def test_errors_propagate(self) -> None:
        def broken(session, url):
            raise TransportError("down")

        with self.assertRaises(TransportError):
            fetch_all_events(Mock(), broken)


class TestFetchPage(unittest.TestCase):
    PAGE = (
        '<table><tr class="infinite-item" id="e1">'
        '<td class="liste_wide min992"><div>Tennis</div><div>ma 14. jun 2021</div><div>18:00</div></td>'
        "</tr></table>"
    )

    def test_parses_response(self) -> None:
        session = MagicMock()
        session.get.return_value = Mock(text=self.PAGE, raise_for_status=Mock())

        events = fetch_page(session, "http://fakeurl")

        self.assertEqual({e.id for e in events}, {"e1"})
        session.get.assert_called_once()
        self.assertEqual(session.get.call_args.args[0], "http://fakeurl")

    def test_network_error_is_transport_error(self) -> None:
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("no route")

        with self.assertRaises(TransportError):
            fetch_page(session, "http://fakeurl")

    def test_http_error_is_transport_error(self) -> None:
        session = MagicMock()
        response = Mock(text="")
        response.raise_for_status.side_effect = requests.HTTPError("503")
        session.get.return_value = response

        with self.assertRaises(TransportError):
            fetch_page(session, "http://fakeurl")

    def test_bad_markup_is_not_transport_error(self) -> None:
        session = MagicMock()
        bad = self.PAGE.replace("<div>18:00</div>", "")
        session.get.return_value = Mock(text=bad, raise_for_status=Mock())

        with self.assertRaises(FormatError):
            fetch_page(session, "http://fakeurl")


if __name__ == "__main__":
    unittest.main()
