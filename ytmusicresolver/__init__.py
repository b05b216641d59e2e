"""
ytmusicresolver - YouTube Music extractor plugin

Resolve YouTube Music URLs and searches into playable songs, with cookie
authentication kept fresh by a browser-driven refresh loop.
"""

__version__ = "0.1.0"

from ytmusicresolver.client import YouTubeMusicClient
from ytmusicresolver.cookie_manager import COOKIES_UPDATED, REFRESH_ERROR, CookieManager
from ytmusicresolver.extractor import YouTubeMusicPlugin
from ytmusicresolver.models import Credential, Playlist, Song
from ytmusicresolver.processor import TrackProcessor
