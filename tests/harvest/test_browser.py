"""Tests for the Plaud browser session, with the Playwright page mocked out."""

from unittest.mock import Mock, patch

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from harvest.browser import PlaudBrowser
from harvest.errors import HarvestError, SourceLoginError

BASE_URL = "https://web.plaud.ai"


def _response(url, body=None, error=None):
    response = Mock()
    response.url = url
    if error is not None:
        response.json.side_effect = error
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def browser():
    """Browser with a mocked page that is never launched."""
    browser = PlaudBrowser(BASE_URL, settle_seconds=0)
    browser.page = Mock()
    return browser


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("harvest.browser.time.sleep"):
        yield


class TestResponseCapture:
    """Tests for collecting network responses."""

    def test_only_interesting_urls_are_kept(self, browser):
        """Test that assets and telemetry responses are ignored."""
        browser._on_response(_response(f"{BASE_URL}/api/file/list"))
        browser._on_response(_response(f"{BASE_URL}/static/app.js"))
        browser._on_response(_response("https://telemetry.example.com/collect"))

        assert [r.url for r in browser._responses] == [f"{BASE_URL}/api/file/list"]

    def test_drain_reads_bodies_once(self, browser):
        """Test that drained bodies are decoded and cleared."""
        browser._on_response(_response(f"{BASE_URL}/api/list", body={"data": []}))
        browser._on_response(_response(f"{BASE_URL}/api/notes", error=ValueError("not json")))

        payloads = browser._drain()

        assert payloads == [(f"{BASE_URL}/api/list", {"data": []}), (f"{BASE_URL}/api/notes", None)]
        assert browser._drain() == []


class TestLogin:
    """Tests for the login flow."""

    def test_successful_login(self, browser):
        """Test that credentials are typed and submitted."""
        browser.page.inner_text.return_value = "My recordings"

        browser.login("me@example.com", "secret")

        browser.page.goto.assert_called_once_with(BASE_URL, wait_until="networkidle")
        typed = [c.args[0] for c in browser.page.keyboard.type.call_args_list]
        assert typed == ["me@example.com", "secret"]
        browser.page.keyboard.press.assert_called_once_with("Enter")

    def test_rejected_credentials(self, browser):
        """Test that an error message after submit raises SourceLoginError."""
        browser.page.wait_for_selector.side_effect = [Mock(), Mock(), PlaywrightTimeoutError("t")]
        browser.page.inner_text.return_value = "Incorrect email or password"

        with pytest.raises(SourceLoginError):
            browser.login("me@example.com", "wrong")

    def test_missing_form(self, browser):
        """Test that a missing login form raises SourceLoginError."""
        browser.page.wait_for_selector.side_effect = PlaywrightTimeoutError("no email field")

        with pytest.raises(SourceLoginError):
            browser.login("me@example.com", "secret")


class TestCapture:
    """Tests for visiting the recordings views."""

    def _visit_with(self, browser, responses_by_path):
        def goto(url, wait_until=None):
            for response in responses_by_path.get(url, []):
                browser._on_response(response)

        browser.page.goto.side_effect = goto

    def test_stops_at_first_view_with_recordings(self, browser):
        """Test that capture stops once a view yields recordings."""
        self._visit_with(
            browser,
            {
                f"{BASE_URL}/recordings": [_response(f"{BASE_URL}/api/user", body={"name": "Me"})],
                f"{BASE_URL}/notes": [
                    _response(f"{BASE_URL}/api/file/list", body={"data": {"list": [{"id": "a"}]}})
                ],
            },
        )

        harvest = browser.capture()

        visited = [c.args[0] for c in browser.page.goto.call_args_list]
        assert visited == [f"{BASE_URL}/recordings", f"{BASE_URL}/notes"]
        assert len(harvest.payloads) == 2
        assert harvest.html is None

    def test_snapshot_when_no_payload_has_recordings(self, browser):
        """Test that an HTML snapshot is taken when no payload has recordings."""
        self._visit_with(browser, {})
        browser.page.content.return_value = "<html></html>"

        harvest = browser.capture()

        assert browser.page.goto.call_count == 3
        assert harvest.html == "<html></html>"
        assert harvest.cards == []

    def test_unreachable_view_is_skipped(self, browser):
        """Test that a view failing to load is skipped."""
        browser.page.goto.side_effect = PlaywrightError("net::ERR_ABORTED")
        browser.page.content.return_value = "<html></html>"

        harvest = browser.capture()

        assert harvest.payloads == []
        assert harvest.html == "<html></html>"

    def test_unreadable_page_is_fatal(self, browser):
        """Test that a failed snapshot raises HarvestError."""
        self._visit_with(browser, {})
        browser.page.content.side_effect = PlaywrightError("Target closed")

        with pytest.raises(HarvestError):
            browser.capture()

    def test_fetch_detail_visits_canonical_link(self, browser):
        """Test that the detail page is reached by its canonical link."""
        browser.fetch_detail("abc 123")
        browser.page.goto.assert_called_once_with(
            f"{BASE_URL}/recordings/abc%20123", wait_until="networkidle"
        )

    def test_views_resolve_against_host_root(self):
        """Test that a base URL with a path still visits root-level views."""
        browser = PlaudBrowser("https://plaud.example.com/app", settle_seconds=0)
        browser.page = Mock()
        browser.page.content.return_value = "<html></html>"

        browser.capture()

        visited = [c.args[0] for c in browser.page.goto.call_args_list]
        assert visited == [
            "https://plaud.example.com/recordings",
            "https://plaud.example.com/notes",
            "https://plaud.example.com/app",
        ]
