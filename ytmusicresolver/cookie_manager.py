#!/usr/bin/env python3

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
import asyncio
import inspect
import json
import logging
import os
import tempfile
import time

from ytmusicresolver.browser_driver import BrowserDriver
from ytmusicresolver.constants import (
    DEFAULT_COOKIE_FILE,
    DEFAULT_LOGIN_POLL_INTERVAL,
    DEFAULT_LOGIN_TIMEOUT,
    DEFAULT_NAVIGATION_TIMEOUT,
    DEFAULT_REFRESH_BEFORE_EXPIRY,
    DEFAULT_REFRESH_INTERVAL,
    DEFAULT_SETTLE_DELAY,
    YTM_ORIGIN,
)
from ytmusicresolver.errors import AutomationUnavailable, CredentialIOFailure, InvalidInput
from ytmusicresolver.models import Credential, ValidationResult

COOKIES_UPDATED = "cookies_updated"
REFRESH_ERROR = "refresh_error"

CookieSource = Union[None, str, "os.PathLike[str]", List[Any]]


def parse_credentials(records: Any) -> List[Credential]:
    """Turn a decoded cookie list into credentials.

    Raises:
        ValueError: If ``records`` is not a list or an entry is malformed.
    """
    if not isinstance(records, list):
        raise ValueError(f"Expected a list of cookies, got {type(records).__name__}")
    return [r if isinstance(r, Credential) else Credential.from_dict(r) for r in records]


def read_cookie_file(path: Union[str, Path]) -> List[Credential]:
    """Read an EditThisCookie-style JSON export.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a valid cookie list.
    """
    with open(path, "r", encoding="utf-8") as fh:
        return parse_credentials(json.load(fh))


def write_cookie_file(path: Union[str, Path], credentials: List[Credential]) -> None:
    """Replace the cookie file in one step via a unique sibling temporary file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps([c.to_dict() for c in credentials], indent=2)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.replace(tmp_name, path)
    except OSError:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class CookieManager:
    """Keeps a YouTube Music cookie set fresh and persisted.

    The manager loads cookies from a list or a JSON file, checks them for
    expiry and re-acquires them by replaying a browser session through an
    injected :class:`BrowserDriver`.  Subscribers are told about every new
    cookie set (``COOKIES_UPDATED``) and every failure (``REFRESH_ERROR``).

    None of the public coroutines raise on I/O or automation failures; they log,
    notify error subscribers and return a safe default instead.
    """

    def __init__(
        self,
        cookies_path: Optional[Union[str, Path]] = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        refresh_before_expiry: float = DEFAULT_REFRESH_BEFORE_EXPIRY,
        auto_refresh: bool = True,
        headless: bool = True,
        driver: Optional[BrowserDriver] = None,
        navigation_timeout: float = DEFAULT_NAVIGATION_TIMEOUT,
        login_timeout: float = DEFAULT_LOGIN_TIMEOUT,
        login_poll_interval: float = DEFAULT_LOGIN_POLL_INTERVAL,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        on_updated: Optional[Callable] = None,
        on_error: Optional[Callable] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the cookie manager.

        Args:
            cookies_path: JSON cookie file used by load/save.
            refresh_interval: Seconds between scheduled checks.
            refresh_before_expiry: Refresh when a cookie expires within this
                many seconds.
            auto_refresh: Whether start_periodic_refresh may start the scheduler.
            headless: Run the browser without a window.  A visible window lets a
                person log in by hand when the stored session is not signed in.
            driver: Browser automation capability; refresh is unavailable
                without one.
            navigation_timeout: Seconds allowed for loading YouTube Music.
            login_timeout: Seconds to wait for a manual login (headful only).
            login_poll_interval: Seconds between login checks.
            settle_delay: Seconds to wait before reading cookies back.
            on_updated: Shortcut for subscribing to ``COOKIES_UPDATED``.
            on_error: Shortcut for subscribing to ``REFRESH_ERROR``.
            logger: Optional logger instance.
        """
        self.logger = logger or logging.getLogger("CookieManager")
        self.cookies_path = Path(cookies_path) if cookies_path else Path(DEFAULT_COOKIE_FILE)
        self.refresh_interval = refresh_interval
        self.refresh_before_expiry = refresh_before_expiry
        self.auto_refresh = auto_refresh
        self.headless = headless
        self.driver = driver
        self.navigation_timeout = navigation_timeout
        self.login_timeout = login_timeout
        self.login_poll_interval = login_poll_interval
        self.settle_delay = settle_delay

        self._subscribers: Dict[str, List[Callable]] = {
            COOKIES_UPDATED: [],
            REFRESH_ERROR: [],
        }
        self._refresh_task: Optional[asyncio.Task] = None

        if on_updated:
            self.subscribe(COOKIES_UPDATED, on_updated)
        if on_error:
            self.subscribe(REFRESH_ERROR, on_error)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, event: str, callback: Callable) -> None:
        """Register ``callback`` for ``event``; coroutine functions are awaited."""
        if event not in self._subscribers:
            raise InvalidInput(f"Unknown cookie manager event: {event!r}")
        if callback not in self._subscribers[event]:
            self._subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: Callable) -> bool:
        callbacks = self._subscribers.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)
            return True
        return False

    async def _emit(self, event: str, payload: Any) -> None:
        for callback in list(self._subscribers[event]):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self.logger.error(f"Subscriber for {event} failed: {e}")

    async def _report(self, error: Exception) -> None:
        self.logger.error(str(error))
        await self._emit(REFRESH_ERROR, error)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load(self, source: CookieSource = None) -> List[Credential]:
        """Load cookies from a list, a file path or the configured path.

        Args:
            source: A cookie list (returned as credentials), a path (which
                becomes the configured path) or None for the configured path.

        Returns:
            The credentials, or an empty list when none could be read.

        Raises:
            InvalidInput: If ``source`` is of any other type.
        """
        if isinstance(source, list):
            try:
                credentials = parse_credentials(source)
            except ValueError as e:
                await self._report(CredentialIOFailure(f"Invalid cookie list: {e}"))
                return []
            self.logger.info(f"Loaded {len(credentials)} cookies from list")
            return credentials

        if isinstance(source, (str, os.PathLike)):
            self.cookies_path = Path(source)
        elif source is not None:
            raise InvalidInput(
                f"Expected a cookie list or a file path, got {type(source).__name__}"
            )

        if not self.cookies_path.exists():
            self.logger.warning(f"Cookie file not found at {self.cookies_path}")
            return []

        try:
            credentials = await asyncio.to_thread(read_cookie_file, self.cookies_path)
        except Exception as e:
            await self._report(
                CredentialIOFailure(f"Failed to load cookies from {self.cookies_path}: {e}")
            )
            return []

        self.logger.info(f"Loaded {len(credentials)} cookies from {self.cookies_path}")
        return credentials

    async def save(self, credentials: List[Credential]) -> bool:
        """Write ``credentials`` to the configured path, replacing its content."""
        try:
            await asyncio.to_thread(write_cookie_file, self.cookies_path, credentials)
        except Exception as e:
            await self._report(
                CredentialIOFailure(f"Failed to save cookies to {self.cookies_path}: {e}")
            )
            return False

        self.logger.info(f"Saved {len(credentials)} cookies to {self.cookies_path}")
        return True

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, credentials: Any) -> ValidationResult:
        """Check a cookie set for expired and soon-to-expire entries.

        Session cookies (no expiry) never count as expired.  ``valid`` only
        reflects expiry; a valid set may still be ``expiring_soon``.
        """
        if not isinstance(credentials, list) or not credentials:
            return ValidationResult(valid=False, message="No credentials provided")

        now = time.time()
        threshold = now + self.refresh_before_expiry
        has_expired = False
        expiring_soon = False
        nearest: Optional[float] = None

        for credential in credentials:
            expires_at = _expiry_of(credential)
            if expires_at is None:
                continue
            if expires_at < now:
                has_expired = True
                self.logger.warning(f"Cookie {_name_of(credential)!r} has expired")
            elif expires_at < threshold:
                expiring_soon = True
            if nearest is None or expires_at < nearest:
                nearest = expires_at

        nearest_expiry = (
            datetime.fromtimestamp(nearest, tz=timezone.utc) if nearest is not None else None
        )
        if has_expired:
            message = "Some cookies have expired"
        elif expiring_soon:
            message = f"Cookies expiring soon (before {nearest_expiry.isoformat()})"
        else:
            message = "All cookies are valid"

        return ValidationResult(
            valid=not has_expired,
            has_expired=has_expired,
            expiring_soon=expiring_soon,
            nearest_expiry=nearest_expiry,
            message=message,
        )

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self) -> Optional[List[Credential]]:
        """Replay a browser session on YouTube Music and capture its cookies.

        Returns:
            The fresh credentials, or None if the refresh failed.  Failures are
            sent to ``REFRESH_ERROR`` subscribers instead of being raised.
        """
        if self.driver is None:
            await self._report(
                AutomationUnavailable("No browser automation driver configured")
            )
            return None

        self.logger.info("Starting cookie refresh...")
        try:
            session = await self.driver.launch(headless=self.headless)
        except Exception as e:
            await self._report(AutomationUnavailable(f"Failed to launch browser: {e}"))
            return None

        try:
            await self._inject_existing_cookies(session)

            self.logger.info("Navigating to YouTube Music...")
            await session.goto(YTM_ORIGIN, timeout=self.navigation_timeout)

            logged_in = await session.is_logged_in()
            if logged_in:
                self.logger.info("Already logged in with existing cookies")
            elif not self.headless:
                await self._wait_for_login(session)

            await asyncio.sleep(self.settle_delay)
            fresh = await session.cookies()
            self.logger.info(f"Captured {len(fresh)} fresh cookies")

            await self.save(fresh)
            await self._emit(COOKIES_UPDATED, fresh)
            return fresh
        except Exception as e:
            self.logger.error(f"Failed to refresh cookies: {e}")
            await self._emit(REFRESH_ERROR, e)
            return None
        finally:
            try:
                await session.close()
            except Exception as e:
                self.logger.warning(f"Failed to close browser: {e}")

    async def _inject_existing_cookies(self, session) -> None:
        if not self.cookies_path.exists():
            self.logger.info(f"No cookie file at {self.cookies_path}, starting fresh")
            return
        try:
            existing = await asyncio.to_thread(read_cookie_file, self.cookies_path)
            if existing:
                await session.add_cookies(existing)
                self.logger.info("Loaded existing cookies into browser")
        except Exception as e:
            self.logger.warning(f"Could not inject existing cookies, starting fresh: {e}")

    async def _wait_for_login(self, session) -> bool:
        self.logger.info("Not logged in. Please login manually in the browser window...")
        self.logger.info(f"Waiting up to {self.login_timeout} seconds for login")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.login_timeout
        while loop.time() < deadline:
            await asyncio.sleep(self.login_poll_interval)
            if await session.is_logged_in():
                self.logger.info("Login detected")
                return True

        self.logger.warning("Login wait timed out, capturing cookies as they are")
        return False

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    @property
    def periodic_refresh_running(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def check_and_refresh(self) -> bool:
        """Refresh only if the stored cookies are expired or expiring soon.

        Returns:
            True if a refresh was attempted.
        """
        self.logger.info("Running scheduled cookie check...")
        try:
            credentials = await self.load(self.cookies_path)
            validation = self.validate(credentials)
            if validation.valid and not validation.expiring_soon:
                self.logger.info("Cookies are still valid, skipping refresh")
                return False

            self.logger.info(f"{validation.message}, refreshing...")
            await self.refresh()
            return True
        except Exception as e:
            self.logger.error(f"Auto-refresh error: {e}")
            return False

    async def _run_periodic_refresh(self) -> None:
        while True:
            await asyncio.sleep(self.refresh_interval)
            # A refresh already in progress outlives cancellation of the scheduler.
            await asyncio.shield(self.check_and_refresh())

    def start_periodic_refresh(self) -> bool:
        """Schedule ``check_and_refresh`` every ``refresh_interval`` seconds.

        Must be called from inside a running event loop.

        Returns:
            True if the scheduler was started by this call.
        """
        if not self.auto_refresh:
            self.logger.info("Auto-refresh is disabled")
            return False
        if self.periodic_refresh_running:
            self.logger.info("Auto-refresh already running")
            return False

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.error("Cannot start auto-refresh without a running event loop")
            return False

        self.logger.info(f"Starting auto-refresh (interval: {self.refresh_interval}s)")
        self._refresh_task = loop.create_task(self._run_periodic_refresh())
        return True

    def stop_periodic_refresh(self) -> bool:
        """Cancel the scheduler. An in-progress refresh is not interrupted."""
        task, self._refresh_task = self._refresh_task, None
        if task is None or task.done():
            return False
        task.cancel()
        self.logger.info("Auto-refresh stopped")
        return True

    def destroy(self) -> None:
        self.stop_periodic_refresh()


def _expiry_of(credential: Any) -> Optional[float]:
    if isinstance(credential, Credential):
        return credential.expires_at
    if isinstance(credential, dict):
        expires = credential.get("expirationDate")
        if isinstance(expires, (int, float)) and not isinstance(expires, bool) and expires > 0:
            return expires
    return None


def _name_of(credential: Any) -> str:
    if isinstance(credential, Credential):
        return credential.name
    if isinstance(credential, dict):
        return str(credential.get("name", "?"))
    return "?"
