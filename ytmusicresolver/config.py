#!/usr/bin/env python3

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union
import logging
import os

from dotenv import load_dotenv

from ytmusicresolver.constants import (
    DEFAULT_COOKIE_FILE,
    DEFAULT_MAX_ITEMS,
    DEFAULT_REFRESH_BEFORE_EXPIRY,
    DEFAULT_REFRESH_INTERVAL,
)
from ytmusicresolver.errors import InvalidInput


@dataclass
class RefreshConfig:
    """Settings for the cookie manager's automatic refresh."""

    cookies_path: Optional[str] = None
    interval: float = DEFAULT_REFRESH_INTERVAL
    before_expiry: float = DEFAULT_REFRESH_BEFORE_EXPIRY
    auto_start: bool = True
    headless: bool = True
    on_updated: Optional[Callable] = None
    on_error: Optional[Callable] = None


class ConfigManager:
    """Centralized option handling for the YouTube Music plugin.

    Options are validated against a fixed key set so typos fail loudly at
    construction time.  Environment variables (optionally loaded from a
    ``.env`` file) fill in values the caller left unset.
    """

    DEFAULT_COOKIE_FILE = Path(DEFAULT_COOKIE_FILE)
    OPTION_KEYS = (
        "max_items",
        "parallel",
        "cookies",
        "cookies_path",
        "client_options",
        "cookie_refresh",
    )
    REFRESH_KEYS = (
        "cookies_path",
        "interval",
        "before_expiry",
        "auto_start",
        "headless",
        "on_updated",
        "on_error",
    )
    ENV_COOKIES_PATH = "YTMUSIC_COOKIES_PATH"
    ENV_REFRESH_HEADLESS = "YTMUSIC_REFRESH_HEADLESS"

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
        load_env: bool = True,
    ):
        """Parse plugin options.

        Args:
            options: Plugin option mapping; see ``OPTION_KEYS``.
            logger: Optional logger instance.
            load_env: Read a ``.env`` file into the environment first.

        Raises:
            InvalidInput: If an option key is unknown or has the wrong type.
        """
        self.logger = logger or logging.getLogger(__name__)
        options = dict(options or {})
        self._check_invalid_keys(options, self.OPTION_KEYS, "YouTubeMusicPlugin")

        if load_env:
            load_dotenv()

        self.max_items = self._positive_int(
            options.get("max_items", DEFAULT_MAX_ITEMS), "max_items"
        )
        self.parallel = bool(options.get("parallel", True))
        self.cookies = self._cookie_list(options.get("cookies"))
        self.cookies_path = options.get("cookies_path") or os.environ.get(
            self.ENV_COOKIES_PATH
        )
        self.client_options: Dict[str, Any] = dict(options.get("client_options") or {})
        self.cookie_refresh = self._refresh_config(options.get("cookie_refresh"))

    @property
    def has_cookies(self) -> bool:
        return bool(self.cookies) or bool(self.cookies_path)

    @property
    def cookie_file(self) -> Path:
        """Path the cookie manager reads and writes."""
        if self.cookies_path:
            return Path(self.cookies_path)
        if self.cookie_refresh and self.cookie_refresh.cookies_path:
            return Path(self.cookie_refresh.cookies_path)
        return self.DEFAULT_COOKIE_FILE

    @staticmethod
    def _check_invalid_keys(options: Mapping[str, Any], allowed, target: str) -> None:
        unknown = sorted(set(options) - set(allowed))
        if unknown:
            raise InvalidInput(
                f"'{unknown[0]}' does not need to be provided in {target}",
                code="INVALID_KEY",
            )

    @staticmethod
    def _positive_int(value: Any, name: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise InvalidInput(f"Expected a positive integer for '{name}', got {value!r}")
        return value

    @staticmethod
    def _positive_number(value: Any, name: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise InvalidInput(f"Expected a positive number for '{name}', got {value!r}")
        return value

    @staticmethod
    def _cookie_list(value: Any) -> Optional[List[Any]]:
        if value is None:
            return None
        if not isinstance(value, list):
            raise InvalidInput(
                f"Expected a list of cookies for 'cookies', got {type(value).__name__}"
            )
        return value

    def _refresh_config(
        self, value: Union[None, bool, Mapping[str, Any]]
    ) -> Optional[RefreshConfig]:
        if not value:
            return None
        if value is True:
            value = {}
        if not isinstance(value, Mapping):
            raise InvalidInput(
                f"Expected True or a mapping for 'cookie_refresh', got {type(value).__name__}"
            )
        self._check_invalid_keys(value, self.REFRESH_KEYS, "cookie_refresh")

        config = RefreshConfig(**value)
        config.interval = self._positive_number(config.interval, "cookie_refresh.interval")
        config.before_expiry = self._positive_number(
            config.before_expiry, "cookie_refresh.before_expiry"
        )
        if "headless" not in value:
            env_headless = os.environ.get(self.ENV_REFRESH_HEADLESS)
            if env_headless is not None:
                config.headless = env_headless.strip().lower() not in ("0", "false", "no")
        self.logger.debug(f"Cookie refresh configured: {config}")
        return config
