import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from detect import probe_playwright
from detect.errors import EXTRACT_ERROR, INVALID_URL, NAV_TIMEOUT, SESSION_ERROR, SETUP_SCRIPT_ERROR, ProbeFailed
from detect.probe_playwright import probe, probe_safely
from detect.utils import validate_url


class FakePage:
    def __init__(self, elements=None, goto_error=None, evaluate_error=None):
        self.elements = elements or []
        self.goto_error = goto_error
        self.evaluate_error = evaluate_error
        self.calls = []

    def set_default_timeout(self, ms):
        self.calls.append(("timeout", ms))

    def goto(self, url, wait_until=None, timeout=None):
        self.calls.append(("goto", url, wait_until))
        if self.goto_error is not None:
            raise self.goto_error

    def wait_for_timeout(self, ms):
        self.calls.append(("wait", ms))

    def evaluate(self, script, arg=None):
        self.calls.append(("evaluate", arg is not None))
        if self.evaluate_error is not None:
            raise self.evaluate_error
        return self.elements


class FakeBrowser:
    def __init__(self, page):
        self.page = page
        self.closed = False

    def new_context(self):
        return self

    def new_page(self):
        return self.page

    def close(self):
        self.closed = True


class FakePlaywright:
    def __init__(self, browser):
        self.chromium = self
        self.browser = browser

    def launch(self, headless=True):
        return self.browser

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def fake_browser(monkeypatch):
    def install(page, browser_cls=FakeBrowser):
        browser = browser_cls(page)
        monkeypatch.setattr(probe_playwright, "sync_playwright", lambda: FakePlaywright(browser))
        return browser

    return install


LIVE = [{
    "tag": "input",
    "id": "email",
    "name": "email",
    "input_type": "email",
    "accessible_name": "Email",
    "role": "textbox",
    "selector": "#email",
    "bounds": {"x": 10, "y": 20, "width": 200, "height": 30},
    "attributes": {"type": "email"},
}]


def test_probe_returns_elements(fake_browser):
    page = FakePage(elements=LIVE)
    browser = fake_browser(page)
    result = probe("http://localhost:5173", settle_ms=0)
    assert result.url == "http://localhost:5173"
    assert result.timestamp > 0
    (el,) = result.elements
    assert el.accessible_name == "Email"
    assert el.bounds.width == 200
    assert browser.closed
    assert ("goto", "http://localhost:5173", "load") in page.calls


def test_setup_script_runs_before_extraction(fake_browser):
    page = FakePage(elements=[])
    fake_browser(page)
    probe("http://localhost:5173", setup_script="document.querySelector('#open').click()", settle_ms=0)
    evaluates = [c for c in page.calls if c[0] == "evaluate"]
    assert evaluates == [("evaluate", False), ("evaluate", True)]


def test_navigation_timeout_closes_browser(fake_browser):
    browser = fake_browser(FakePage(goto_error=PlaywrightTimeoutError("Timeout 10ms exceeded")))
    with pytest.raises(ProbeFailed) as exc:
        probe("http://localhost:5173", timeout_ms=10, settle_ms=0)
    assert exc.value.code == NAV_TIMEOUT
    assert exc.value.stage == "navigate"
    assert browser.closed


def test_setup_script_failure(fake_browser):
    browser = fake_browser(FakePage(evaluate_error=PlaywrightError("ReferenceError: openModal")))
    with pytest.raises(ProbeFailed) as exc:
        probe("http://localhost:5173", setup_script="openModal()", settle_ms=0)
    assert exc.value.code == SETUP_SCRIPT_ERROR
    assert browser.closed


def test_malformed_extraction_payload(fake_browser):
    fake_browser(FakePage(elements=[{"id": "no-tag"}]))
    with pytest.raises(ProbeFailed) as exc:
        probe("http://localhost:5173", settle_ms=0)
    assert exc.value.code == EXTRACT_ERROR


def test_driver_start_failure_is_reported(monkeypatch):
    class AsyncLoopPlaywright(FakePlaywright):
        def __enter__(self):
            raise PlaywrightError("It looks like you are using Playwright Sync API inside the asyncio loop.")

    monkeypatch.setattr(probe_playwright, "sync_playwright", lambda: AsyncLoopPlaywright(None))
    with pytest.raises(ProbeFailed) as exc:
        probe("http://localhost:5173", settle_ms=0)
    assert (exc.value.code, exc.value.stage) == (SESSION_ERROR, "session")


def test_context_failure_closes_browser(fake_browser):
    class ClosedBrowser(FakeBrowser):
        def new_context(self):
            raise PlaywrightError("Target page, context or browser has been closed")

    browser = fake_browser(FakePage(), browser_cls=ClosedBrowser)
    with pytest.raises(ProbeFailed) as exc:
        probe("http://localhost:5173", settle_ms=0)
    assert exc.value.code == SESSION_ERROR
    assert browser.closed


def test_probe_safely_returns_none(fake_browser):
    fake_browser(FakePage(goto_error=PlaywrightTimeoutError("Timeout")))
    assert probe_safely("http://localhost:5173", settle_ms=0) is None


@pytest.mark.parametrize("url", ["", "localhost:3000", "ftp://example.com/x", "http://"])
def test_invalid_urls(url):
    with pytest.raises(ProbeFailed) as exc:
        validate_url(url)
    assert exc.value.code == INVALID_URL


def test_file_urls_are_accepted():
    validate_url("file:///tmp/page.html")
