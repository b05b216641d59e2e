"""Shared constants for the ytmusicresolver package."""

from typing import Dict, Tuple


SOURCE_NAME = "youtube-music"
PLUGIN_NAME = "YouTubeMusic"

YTM_ORIGIN = "https://music.youtube.com"
WATCH_URL = YTM_ORIGIN + "/watch?v={video_id}"

# Placeholders used when the upstream response omits a field.
UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_NAMES: Dict[str, str] = {
    "playlist": "Unknown Playlist",
    "album": "Unknown Album",
    "artist": UNKNOWN_ARTIST,
}

DEFAULT_MAX_ITEMS = 10
DEFAULT_SEARCH_LIMIT = 3

# Format selection defaults for get_stream_url; host stream options override.
DEFAULT_FORMAT_CRITERIA: Dict[str, str] = {
    "filter": "audioonly",
    "quality": "highestaudio",
}

# Cookie manager timings, all in seconds.
DEFAULT_REFRESH_INTERVAL = 24 * 60 * 60
DEFAULT_REFRESH_BEFORE_EXPIRY = 60 * 60
DEFAULT_NAVIGATION_TIMEOUT = 60
DEFAULT_LOGIN_TIMEOUT = 5 * 60
DEFAULT_LOGIN_POLL_INTERVAL = 2
DEFAULT_SETTLE_DELAY = 2

DEFAULT_COOKIE_DOMAIN = ".youtube.com"
DEFAULT_COOKIE_FILE = "cookies.json"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_LAUNCH_ARGS: Tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--disable-features=IsolateOrigins,site-per-process",
)

# Any of these present in the page means the session is signed in.
LOGIN_SELECTORS: Tuple[str, ...] = (
    'ytmusic-nav-bar #right-content img[id="img"]',
    "ytmusic-nav-bar #avatar-btn",
    'yt-img-shadow img[id="img"]',
)
