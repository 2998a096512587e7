"""
Unit tests for BrowserSession error mapping, using a stub Playwright page.
"""

import asyncio
import json

import pytest
from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeoutError

from src.core.exceptions import RenderDelayError, SelectionError, SessionFatalError
from src.harvester.markup import SiteMarkup
from src.harvester.session import SET_VALUE_JS, BrowserSession


class StubHandle:
    def __init__(self, click_error=None):
        self.click_error = click_error
        self.clicks = 0

    async def click(self, force=False, timeout=None):
        if self.click_error:
            raise self.click_error
        self.clicks += 1


class StubContext:
    async def storage_state(self):
        return {"cookies": [{"name": "sid", "value": "1"}], "origins": []}


class StubPage:
    def __init__(self):
        self.closed = False
        self.url = "https://console.test/"
        self.goto_error = None
        self.gotos = []
        self.content_error = None
        self.load_error = None
        self.fill_error = None
        self.query_error = None
        self.handles = {}
        self.evaluated = []
        self.context = StubContext()

    def is_closed(self):
        return self.closed

    async def goto(self, url, wait_until=None, timeout=None):
        self.gotos.append(url)
        if self.goto_error:
            raise self.goto_error

    async def wait_for_load_state(self, state, timeout=None):
        if self.load_error:
            raise self.load_error

    async def content(self):
        if self.content_error:
            raise self.content_error
        return "<html></html>"

    async def evaluate(self, script, arg=None):
        self.evaluated.append((script, arg))
        return True

    async def query_selector(self, selector):
        if self.query_error:
            raise self.query_error
        return self.handles.get(selector)

    async def query_selector_all(self, selector):
        if self.query_error:
            raise self.query_error
        handle = self.handles.get(selector)
        return [handle] if handle is not None else []

    async def fill(self, selector, value, timeout=None):
        if self.fill_error:
            raise self.fill_error


@pytest.fixture
def page():
    return StubPage()


@pytest.fixture
def session(page, harvest_config):
    harvest_config.nav_max_retries = 0
    return BrowserSession(page, harvest_config, SiteMarkup())


def run(coro):
    return asyncio.run(coro)


class TestNavigation:
    """Tests for navigate and load waits."""

    def test_relative_path_joined_to_base(self, session, page):
        run(session.navigate("/groups"))
        assert page.gotos == ["https://console.test/groups"]

    def test_failure_is_render_delay(self, session, page):
        page.goto_error = PlaywrightError("net::ERR_CONNECTION_RESET")
        with pytest.raises(RenderDelayError):
            run(session.navigate("/groups"))

    def test_failure_on_closed_page_is_fatal(self, session, page):
        page.goto_error = PlaywrightError("Target page, context or browser has been closed")
        page.closed = True
        with pytest.raises(SessionFatalError):
            run(session.navigate("/groups"))

    def test_load_timeout_returns_false(self, session, page):
        page.load_error = PlaywrightTimeoutError("Timeout 45000ms exceeded")
        assert run(session.wait_for_load_settled()) is False


class TestReading:
    """Tests for content reads."""

    def test_content_error_is_empty_sample(self, session, page):
        page.content_error = PlaywrightError("Execution context was destroyed")
        assert run(session.content()) == ""

    def test_content_error_on_closed_page_is_fatal(self, session, page):
        page.content_error = PlaywrightError("closed")
        page.closed = True
        with pytest.raises(SessionFatalError):
            run(session.content())

    def test_query_error_is_render_delay(self, session, page):
        page.query_error = PlaywrightError("Execution context was destroyed")
        with pytest.raises(RenderDelayError):
            run(session.query_all("#followers-pagination .pagination-btn"))

    def test_query_error_on_closed_page_is_fatal(self, session, page):
        page.query_error = PlaywrightError("Target page, context or browser has been closed")
        page.closed = True
        with pytest.raises(SessionFatalError):
            run(session.query("#followers-pagination"))


class TestActing:
    """Tests for click and input."""

    def test_click_selector(self, session, page):
        handle = StubHandle()
        page.handles["#go"] = handle
        run(session.click("#go"))
        assert handle.clicks == 1

    def test_click_missing_selector(self, session):
        with pytest.raises(SelectionError):
            run(session.click("#missing"))

    def test_click_failure_is_selection_error(self, session):
        handle = StubHandle(click_error=PlaywrightError("Element is not attached"))
        with pytest.raises(SelectionError):
            run(session.click(handle))

    def test_fill_falls_back_to_script(self, session, page):
        page.fill_error = PlaywrightError("Element is not an <input>")
        run(session.type_or_set_value("input[name='finished_from']", "28.02.2026"))
        assert page.evaluated == [(SET_VALUE_JS, ["input[name='finished_from']", "28.02.2026"])]


class TestSaveState:
    def test_writes_storage_state(self, session, harvest_config):
        run(session.save_state())
        state = json.loads(harvest_config.state_file.read_text("utf-8"))
        assert state["cookies"][0]["name"] == "sid"
