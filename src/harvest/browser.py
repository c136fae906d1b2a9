"""Browser session against the Plaud web app.

Plaud has no public API, so recordings are harvested by logging into the web
app with Playwright and capturing the JSON responses its own frontend fetches.
When nothing usable comes over the network, an HTML snapshot of the page is
kept for the DOM fallback.
"""

import re
import time
from typing import Any
from urllib.parse import urljoin

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Response, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from common.logger import get_logger
from extract.json_extraction import extract_from_payload
from sync.payload import canonical_link

from .errors import HarvestError, SourceLoginError
from .models import Harvest

logger = get_logger(__name__)

EMAIL_SELECTORS = (
    'input[type="email"]',
    'input[name="email"]',
    'input[autocomplete="email"]',
    'input[placeholder*="email" i]',
)
PASSWORD_SELECTORS = (
    'input[type="password"]',
    'input[name="password"]',
    'input[autocomplete="current-password"]',
    'input[placeholder*="password" i]',
)
LOGGED_IN_SELECTORS = (
    'a[href*="record" i]',
    'a[href*="note" i]',
    'button[aria-label*="profile" i]',
    '[data-testid*="user" i]',
)
LOGIN_FAILURE_MARKERS = ("incorrect", "invalid", "wrong password")

RECORDING_PATHS = ("/recordings", "/notes", "/app")

# Responses worth reading; everything else (assets, telemetry) is ignored
CAPTURE_URL_PATTERN = re.compile(r"api|record|note|transcript|meeting", re.IGNORECASE)


class PlaudBrowser:
    """Headless Chromium session logged into Plaud.

    Example:
        >>> with PlaudBrowser("https://web.plaud.ai") as browser:
        ...     browser.login(email, password)
        ...     harvest = browser.capture()
    """

    def __init__(
        self,
        base_url: str,
        headless: bool = True,
        timeout_ms: int = 60_000,
        settle_seconds: float = 2.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.headless = headless
        self.timeout_ms = timeout_ms
        self.settle_seconds = settle_seconds
        self._responses: list[Response] = []
        self._playwright = None
        self._browser = None
        self.page = None

    def __enter__(self) -> "PlaudBrowser":
        self._playwright = sync_playwright().start()
        try:
            self._browser = self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
        except PlaywrightError as e:
            self._playwright.stop()
            raise HarvestError(
                f"Could not launch Chromium (run 'playwright install chromium'): {e}"
            ) from e
        self.page = self._browser.new_page()
        self.page.set_default_timeout(self.timeout_ms)
        self.page.on("response", self._on_response)
        return self

    def __exit__(self, *exc_info) -> None:
        if self._browser is not None:
            self._browser.close()
        if self._playwright is not None:
            self._playwright.stop()

    def _on_response(self, response: Response) -> None:
        if CAPTURE_URL_PATTERN.search(response.url):
            self._responses.append(response)

    def _drain(self) -> list[tuple[str, Any]]:
        """Read bodies of responses captured since the last drain."""
        payloads = []
        for response in self._responses:
            try:
                body = response.json()
            except (PlaywrightError, ValueError):
                body = None
            payloads.append((response.url, body))
        self._responses.clear()
        return payloads

    def _type_into(self, selectors: tuple[str, ...], value: str) -> None:
        element = self.page.wait_for_selector(", ".join(selectors), timeout=20_000)
        element.click(click_count=3)
        self.page.keyboard.type(value, delay=20)

    def login(self, email: str, password: str) -> None:
        """Log into Plaud.

        Raises:
            SourceLoginError: If the form cannot be found or Plaud rejects the credentials
        """
        logger.info("Navigating to Plaud login...")
        try:
            self.page.goto(self.base_url, wait_until="networkidle")
            # Some routes land on home and redirect to login
            time.sleep(1.0)

            logger.debug("Filling login form")
            self._type_into(EMAIL_SELECTORS, email)
            self._type_into(PASSWORD_SELECTORS, password)
            self.page.keyboard.press("Enter")
        except PlaywrightError as e:
            raise SourceLoginError(f"Could not complete the Plaud login form: {e}") from e

        try:
            self.page.wait_for_selector(", ".join(LOGGED_IN_SELECTORS), timeout=45_000)
        except PlaywrightTimeoutError:
            logger.debug("No logged-in marker appeared, checking for an error message")

        try:
            body_text = (self.page.inner_text("body") or "").lower()
        except PlaywrightError as e:
            raise SourceLoginError(f"Could not read the page after login: {e}") from e
        if any(marker in body_text for marker in LOGIN_FAILURE_MARKERS):
            raise SourceLoginError(
                "Plaud login appears to have failed. Check PLAUD_EMAIL and PLAUD_PASSWORD."
            )

        self._drain()
        logger.info("Logged into Plaud")

    def _visit(self, url: str) -> list[tuple[str, Any]]:
        self.page.goto(url, wait_until="networkidle")
        # Let late XHRs land
        time.sleep(self.settle_seconds)
        return self._drain()

    def capture(self, paths: tuple[str, ...] = RECORDING_PATHS) -> Harvest:
        """Visit the recordings views until one yields recordings.

        Returns:
            Harvest with every captured payload, plus an HTML snapshot when no
            payload contained a recording
        """
        harvest = Harvest()
        found = False

        for path in paths:
            url = urljoin(self.base_url, path)
            try:
                payloads = self._visit(url)
            except PlaywrightError as e:
                logger.warning(f"Could not open {url}: {e}")
                continue

            harvest.payloads.extend(payloads)
            if any(extract_from_payload(body) for _, body in payloads):
                found = True
                break

        if found:
            logger.info(f"Captured {len(harvest.payloads)} response(s) from Plaud")
            return harvest

        logger.info("No recordings in network responses, taking DOM snapshot...")
        try:
            time.sleep(1.5)
            harvest.html = self.page.content()
        except PlaywrightError as e:
            raise HarvestError(f"Could not read the Plaud page: {e}") from e
        return harvest

    def fetch_detail(self, identity: str) -> list[tuple[str, Any]]:
        """Open a recording's detail page and return the payloads it loaded."""
        return self._visit(canonical_link(identity, self.base_url))
