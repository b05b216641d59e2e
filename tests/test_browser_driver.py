#!/usr/bin/env python3

import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from ytmusicresolver.browser_driver import (
    BrowserDriver,
    BrowserSession,
    PlaywrightDriver,
    PlaywrightSession,
    from_browser_cookie,
    to_browser_cookie,
)
from ytmusicresolver.models import Credential, SameSite


class TestCookieConversion(unittest.TestCase):
    def test_to_browser_cookie(self):
        cookie = to_browser_cookie(
            Credential(
                name="SID",
                value="abc",
                secure=True,
                http_only=True,
                same_site=SameSite.NONE,
                expires_at=1767225600,
            )
        )
        self.assertEqual(
            cookie,
            {
                "name": "SID",
                "value": "abc",
                "domain": ".youtube.com",
                "path": "/",
                "expires": 1767225600,
                "httpOnly": True,
                "secure": True,
                "sameSite": "None",
            },
        )

    def test_session_and_unspecified_same_site(self):
        cookie = to_browser_cookie(Credential(name="PREF", value="x"))
        self.assertEqual(cookie["expires"], -1)
        self.assertEqual(cookie["sameSite"], "Lax")

    def test_from_browser_cookie(self):
        credential = from_browser_cookie(
            {
                "name": "PREF",
                "value": "x",
                "domain": "music.youtube.com",
                "path": "/",
                "expires": -1,
                "httpOnly": False,
                "secure": True,
                "sameSite": "Strict",
            }
        )
        self.assertTrue(credential.is_session)
        self.assertTrue(credential.host_only)
        self.assertIs(credential.same_site, SameSite.STRICT)


class TestPlaywrightDriver(unittest.IsolatedAsyncioTestCase):
    def make_playwright(self):
        page = MagicMock()
        page.goto = AsyncMock()
        page.evaluate = AsyncMock(return_value=True)
        context = MagicMock()
        context.new_page = AsyncMock(return_value=page)
        context.add_cookies = AsyncMock()
        context.cookies = AsyncMock(
            return_value=[{"name": "SID", "value": "abc", "domain": ".youtube.com", "expires": 1e10}]
        )
        browser = MagicMock()
        browser.new_context = AsyncMock(return_value=context)
        browser.close = AsyncMock()
        playwright = MagicMock()
        playwright.chromium.launch = AsyncMock(return_value=browser)
        playwright.stop = AsyncMock()
        return playwright, browser, context, page

    def test_protocols(self):
        self.assertIsInstance(PlaywrightDriver(), BrowserDriver)
        session = PlaywrightSession(None, None, None, None, MagicMock())
        self.assertIsInstance(session, BrowserSession)

    @patch("ytmusicresolver.browser_driver.async_playwright")
    async def test_launch_and_session(self, mock_async_playwright):
        playwright, browser, context, page = self.make_playwright()
        mock_async_playwright.return_value.start = AsyncMock(return_value=playwright)

        session = await PlaywrightDriver(user_agent="UA").launch(headless=False)

        launch_kwargs = playwright.chromium.launch.call_args.kwargs
        self.assertFalse(launch_kwargs["headless"])
        self.assertIn("--no-sandbox", launch_kwargs["args"])
        browser.new_context.assert_awaited_once_with(user_agent="UA")

        await session.add_cookies([Credential(name="SID", value="abc")])
        self.assertEqual(context.add_cookies.call_args.args[0][0]["name"], "SID")

        await session.goto("https://music.youtube.com", timeout=60)
        page.goto.assert_awaited_once_with(
            "https://music.youtube.com", wait_until="networkidle", timeout=60000
        )

        self.assertTrue(await session.is_logged_in())
        cookies = await session.cookies()
        self.assertEqual(cookies[0].name, "SID")
        self.assertEqual(cookies[0].expires_at, 1e10)

        await session.close()
        browser.close.assert_awaited_once()
        playwright.stop.assert_awaited_once()

    @patch("ytmusicresolver.browser_driver.async_playwright")
    async def test_launch_failure_stops_playwright(self, mock_async_playwright):
        playwright, _, _, _ = self.make_playwright()
        playwright.chromium.launch = AsyncMock(side_effect=RuntimeError("no chromium"))
        mock_async_playwright.return_value.start = AsyncMock(return_value=playwright)

        with self.assertRaises(RuntimeError):
            await PlaywrightDriver().launch()
        playwright.stop.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
