#!/usr/bin/env python3

"""Browser automation used by the cookie manager to replay a login session.

The cookie manager only depends on the :class:`BrowserDriver` and
:class:`BrowserSession` protocols.  :class:`PlaywrightDriver` is the concrete
implementation backed by Playwright's async API; tests inject fakes.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable
import logging

from playwright.async_api import async_playwright

from ytmusicresolver.constants import (
    BROWSER_LAUNCH_ARGS,
    BROWSER_USER_AGENT,
    DEFAULT_COOKIE_DOMAIN,
    LOGIN_SELECTORS,
)
from ytmusicresolver.models import Credential, SameSite


_TO_BROWSER_SAME_SITE = {
    SameSite.NONE: "None",
    SameSite.LAX: "Lax",
    SameSite.STRICT: "Strict",
    SameSite.UNSPECIFIED: "Lax",
}
_FROM_BROWSER_SAME_SITE = {
    "None": SameSite.NONE,
    "Lax": SameSite.LAX,
    "Strict": SameSite.STRICT,
}

_LOGIN_PROBE = "(selectors) => selectors.some((s) => !!document.querySelector(s))"


def to_browser_cookie(credential: Credential) -> Dict[str, Any]:
    """Convert a credential to the cookie shape the browser context accepts."""
    return {
        "name": credential.name,
        "value": credential.value,
        "domain": credential.domain or DEFAULT_COOKIE_DOMAIN,
        "path": credential.path or "/",
        "expires": credential.expires_at if credential.expires_at is not None else -1,
        "httpOnly": credential.http_only,
        "secure": credential.secure,
        "sameSite": _TO_BROWSER_SAME_SITE[credential.same_site],
    }


def from_browser_cookie(cookie: Dict[str, Any]) -> Credential:
    """Convert a cookie read from the browser context into a credential."""
    domain = cookie.get("domain", "")
    expires = cookie.get("expires")
    return Credential(
        name=cookie["name"],
        value=cookie.get("value", ""),
        domain=domain,
        path=cookie.get("path", "/"),
        secure=bool(cookie.get("secure", False)),
        http_only=bool(cookie.get("httpOnly", False)),
        same_site=_FROM_BROWSER_SAME_SITE.get(cookie.get("sameSite"), SameSite.UNSPECIFIED),
        expires_at=expires if expires and expires > 0 else None,
        host_only=not domain.startswith("."),
    )


@runtime_checkable
class BrowserSession(Protocol):
    """One isolated browser context, alive for a single refresh."""

    async def add_cookies(self, credentials: List[Credential]) -> None:
        ...

    async def goto(self, url: str, timeout: float) -> None:
        ...

    async def is_logged_in(self) -> bool:
        ...

    async def cookies(self) -> List[Credential]:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class BrowserDriver(Protocol):
    async def launch(self, headless: bool = True) -> BrowserSession:
        ...


class PlaywrightSession:
    """A Chromium page plus the objects that must be torn down with it."""

    def __init__(self, playwright, browser, context, page, logger: logging.Logger):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self.page = page
        self.logger = logger

    async def add_cookies(self, credentials: List[Credential]) -> None:
        await self._context.add_cookies([to_browser_cookie(c) for c in credentials])
        self.logger.debug(f"Injected {len(credentials)} cookies into browser context")

    async def goto(self, url: str, timeout: float) -> None:
        await self.page.goto(url, wait_until="networkidle", timeout=timeout * 1000)

    async def is_logged_in(self) -> bool:
        return bool(await self.page.evaluate(_LOGIN_PROBE, list(LOGIN_SELECTORS)))

    async def cookies(self) -> List[Credential]:
        return [from_browser_cookie(c) for c in await self._context.cookies()]

    async def close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class PlaywrightDriver:
    """Launches headless or headful Chromium through Playwright."""

    def __init__(
        self,
        user_agent: str = BROWSER_USER_AGENT,
        launch_args: Sequence[str] = BROWSER_LAUNCH_ARGS,
        logger: Optional[logging.Logger] = None,
    ):
        self.user_agent = user_agent
        self.launch_args = list(launch_args)
        self.logger = logger or logging.getLogger("PlaywrightDriver")

    async def launch(self, headless: bool = True) -> PlaywrightSession:
        self.logger.debug(f"Launching Chromium (headless={headless})")
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=headless, args=self.launch_args
            )
            context = await browser.new_context(user_agent=self.user_agent)
            page = await context.new_page()
        except Exception:
            await playwright.stop()
            raise
        return PlaywrightSession(playwright, browser, context, page, self.logger)
