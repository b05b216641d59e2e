#!/usr/bin/env python3

from typing import Any, Dict, List, Mapping, Optional
import asyncio
import logging
import re

from ytmusicresolver.browser_driver import BrowserDriver, PlaywrightDriver
from ytmusicresolver.client import YouTubeMusicClient
from ytmusicresolver.config import ConfigManager
from ytmusicresolver.constants import (
    DEFAULT_FORMAT_CRITERIA,
    DEFAULT_SEARCH_LIMIT,
    PLUGIN_NAME,
    UNKNOWN_NAMES,
)
from ytmusicresolver.cookie_manager import (
    COOKIES_UPDATED,
    REFRESH_ERROR,
    CookieManager,
    parse_credentials,
    read_cookie_file,
)
from ytmusicresolver.errors import (
    InvalidInput,
    NoPlayableContent,
    UpstreamFetchFailure,
    YTMusicPluginError,
)
from ytmusicresolver.models import (
    Credential,
    Playlist,
    ResourceKind,
    ResourceRef,
    Resolved,
    Song,
)
from ytmusicresolver.plugin import ExtractorPlugin, Host, PluginState
from ytmusicresolver.processor import TrackProcessor
from ytmusicresolver.yt_dlp_utils import AuthenticatedClient, StreamClient

_PLAYLIST_RE = re.compile(r"[?&]list=([^&#]+)")
_ALBUM_RES = (
    re.compile(r"/album/([^?/#]+)"),
    re.compile(r"/browse/(MPREb_[^?/#]+)"),
)
_ARTIST_RES = (
    re.compile(r"/artist/([^?/#]+)"),
    re.compile(r"/channel/([^?/#]+)"),
)

# Keys of the host's stream options that affect format selection.
_FORMAT_KEYS = ("filter", "quality")


class YouTubeMusicPlugin(ExtractorPlugin):
    """Resolves YouTube Music URLs and searches into songs and playlists.

    Stream URLs are fetched with an authenticated yt-dlp client when cookies
    are configured.  With ``cookie_refresh`` set, a :class:`CookieManager`
    keeps those cookies fresh and the client is rebuilt every time it reports
    a new cookie set.  Calls already in flight keep the client they started
    with.

    Args:
        options: Plugin options; see :class:`ConfigManager`.
        search_client: Search API client; a :class:`YouTubeMusicClient` if None.
        stream_client: Stream-info client; a :class:`StreamClient` if None.
        browser_driver: Automation used for cookie refresh; Playwright if None.
        logger: Optional logger instance.
    """

    def __init__(
        self,
        options: Optional[Mapping[str, Any]] = None,
        search_client: Optional[YouTubeMusicClient] = None,
        stream_client: Optional[StreamClient] = None,
        browser_driver: Optional[BrowserDriver] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger("YouTubeMusicPlugin")
        self.config = ConfigManager(options, logger=self.logger)
        self.search_client = search_client or YouTubeMusicClient(logger=self.logger)
        self.stream_client = stream_client or StreamClient(
            params=self.config.client_options, logger=self.logger
        )
        self.processor = TrackProcessor(logger=self.logger)

        self.host: Optional[Host] = None
        self.state = PluginState.UNINITIALIZED
        self.client: Optional[AuthenticatedClient] = None
        self.cookie_manager: Optional[CookieManager] = None

        if self.config.cookie_refresh:
            self._initialize_cookie_manager(browser_driver)

        if self.config.has_cookies:
            self._initialize_client()

    @property
    def name(self) -> str:
        return PLUGIN_NAME

    # ------------------------------------------------------------------
    # Cookies and the authenticated client
    # ------------------------------------------------------------------

    def _initialize_cookie_manager(self, driver: Optional[BrowserDriver]) -> None:
        refresh = self.config.cookie_refresh
        self.cookie_manager = CookieManager(
            cookies_path=self.config.cookie_file,
            refresh_interval=refresh.interval,
            refresh_before_expiry=refresh.before_expiry,
            auto_refresh=refresh.auto_start,
            headless=refresh.headless,
            driver=driver or PlaywrightDriver(logger=self.logger),
            logger=self.logger,
        )
        self.cookie_manager.subscribe(COOKIES_UPDATED, self._on_cookies_updated)
        self.cookie_manager.subscribe(REFRESH_ERROR, self._on_refresh_error)
        if refresh.on_updated:
            self.cookie_manager.subscribe(COOKIES_UPDATED, refresh.on_updated)
        if refresh.on_error:
            self.cookie_manager.subscribe(REFRESH_ERROR, refresh.on_error)
        self.logger.info("Cookie manager initialized")

    def _configured_credentials(self) -> List[Credential]:
        if self.config.cookies:
            return parse_credentials(self.config.cookies)
        credentials = read_cookie_file(self.config.cookie_file)
        self.logger.info(f"Loaded {len(credentials)} cookies from {self.config.cookie_file}")
        return credentials

    def _initialize_client(
        self, credentials: Optional[List[Credential]] = None
    ) -> Optional[AuthenticatedClient]:
        """Build a new authenticated client and swap it in.

        Args:
            credentials: Cookie set to use; the configured cookies if None.

        Returns:
            The new client, or None if no usable cookies were found.
        """
        try:
            if credentials is None:
                credentials = self._configured_credentials()
            if not credentials:
                self.logger.warning("No valid cookies provided for client initialization")
                return None

            version = self.client.version + 1 if self.client else 1
            client = self.stream_client.create_authenticated_client(
                credentials, self.config.client_options, version=version
            )
        except Exception as e:
            self.logger.error(f"Failed to create cookie client: {e}")
            return None

        self.client = client
        self.logger.info(f"Cookie client initialized (version {client.version})")

        if self.cookie_manager:
            validation = self.cookie_manager.validate(credentials)
            self.logger.info(f"Cookie validation - {validation.message}")
            if not validation.valid or validation.expiring_soon:
                self.logger.warning("Cookies may need refresh")
        return client

    def _on_cookies_updated(self, credentials: List[Credential]) -> None:
        self.logger.info("Cookies updated, reinitializing client...")
        self.config.cookies = list(credentials)
        self._initialize_client(list(credentials))

    def _on_refresh_error(self, error: Exception) -> None:
        self.logger.error(f"Cookie refresh error: {error}")

    # ------------------------------------------------------------------
    # Host contract
    # ------------------------------------------------------------------

    async def init(self, host: Host) -> None:
        """Bind to the host and bring the search API online.

        Raises:
            UpstreamFetchFailure: If the search API cannot be initialized.
                The plugin stays unusable; there is no automatic retry.
        """
        self.host = host
        self.state = PluginState.INITIALIZING
        if self.client:
            self.logger.info("Using authenticated client with cookies")

        try:
            await self.search_client.initialize()
        except Exception as e:
            self.state = PluginState.FAILED
            self.logger.error(f"Failed to initialize YouTube Music API: {e}")
            raise UpstreamFetchFailure(f"Failed to initialize YouTube Music API: {e}") from e

        self.state = PluginState.READY
        self.logger.info("YouTube Music API initialized successfully")

        if self.cookie_manager:
            self.cookie_manager.start_periodic_refresh()

    def _ensure_ready(self) -> None:
        if self.state is not PluginState.READY:
            raise YTMusicPluginError(
                f"YouTubeMusicPlugin is not ready (state: {self.state.value})"
            )

    def validate(self, url: str) -> bool:
        return isinstance(url, str) and (
            "music.youtube.com" in url
            or "youtube.com/playlist" in url
            or "/album/" in url
            or "/artist/" in url
            or self.stream_client.validate_url(url)
        )

    def classify(self, url: str) -> ResourceRef:
        """Work out what a URL points at and extract its ID.

        Checked in order: playlist, album, artist, video.  The ID is None when
        the matching pattern has no usable ID.

        Raises:
            InvalidInput: If ``url`` is not a string.
        """
        if not isinstance(url, str):
            raise InvalidInput(f"Expected a URL string, got {type(url).__name__}")

        if "/playlist" in url or "list=" in url:
            match = _PLAYLIST_RE.search(url)
            return ResourceRef(ResourceKind.PLAYLIST, match.group(1) if match else None)

        if "/album/" in url or "/browse/MPREb_" in url:
            return ResourceRef(ResourceKind.ALBUM, _first_match(_ALBUM_RES, url))

        if "/artist/" in url or "/channel/" in url:
            return ResourceRef(ResourceKind.ARTIST, _first_match(_ARTIST_RES, url))

        try:
            video_id = self.stream_client.get_video_id(url.strip())
        except Exception:
            video_id = None
        return ResourceRef(ResourceKind.VIDEO, video_id)

    async def resolve(self, url: str, member: Any = None, metadata: Any = None) -> Resolved:
        """Resolve a URL to a :class:`Song` or a :class:`Playlist`.

        Raises:
            InvalidInput: If the URL is empty or carries no usable ID.
            NoPlayableContent: If a collection has no convertible tracks.
            UpstreamFetchFailure: If the search API or yt-dlp fails.
        """
        if not url or not isinstance(url, str):
            raise InvalidInput(f"Expected a non-empty URL string, got {url!r}")
        self._ensure_ready()

        kind, item_id = self.classify(url)
        if not item_id:
            raise InvalidInput(f"Could not extract ID from URL: {url}")

        try:
            if kind is ResourceKind.VIDEO:
                return await self._resolve_video(item_id, member, metadata)
            return await self._resolve_collection(kind, item_id, url, member, metadata)
        except YTMusicPluginError:
            raise
        except Exception as e:
            self.logger.error(f"Error resolving {kind.value} with ID {item_id}: {e}")
            raise UpstreamFetchFailure(
                f"Failed to resolve {kind.value} {item_id}: {e or 'Unknown error'}"
            ) from e

    async def _fetch_collection(self, kind: ResourceKind, item_id: str):
        """Return ``(info, tracks, name)`` for a playlist, album or artist."""
        if kind is ResourceKind.PLAYLIST:
            info = await self.search_client.get_playlist(item_id, limit=self.config.max_items)
            return info, (info or {}).get("tracks"), (info or {}).get("title")
        if kind is ResourceKind.ALBUM:
            info = await self.search_client.get_album(item_id)
            return info, (info or {}).get("tracks"), (info or {}).get("title")
        info = await self.search_client.get_artist(item_id)
        return info, (info or {}).get("songs"), (info or {}).get("name")

    async def _resolve_collection(
        self, kind: ResourceKind, item_id: str, url: str, member: Any, metadata: Any
    ) -> Playlist:
        info, tracks, name = await self._fetch_collection(kind, item_id)
        if not info or not isinstance(tracks, list):
            raise UpstreamFetchFailure(
                f"Failed to resolve {kind.value} {item_id}: "
                f"Could not fetch {kind.value} information"
            )

        tracks = tracks[: self.config.max_items]
        songs = await self._process_tracks(tracks, member, metadata)
        if not songs:
            raise NoPlayableContent(f"No playable songs found in {kind.value} {item_id}")

        self.logger.debug(f"Resolved {kind.value} {item_id} with {len(songs)} songs")
        return Playlist(
            id=item_id,
            name=name or UNKNOWN_NAMES[kind.value],
            url=url,
            songs=songs,
            thumbnail=self.processor.best_thumbnail(info),
            member=member,
            metadata=metadata,
        )

    async def _resolve_video(self, video_id: str, member: Any, metadata: Any) -> Song:
        info = await self.stream_client.get_info(
            self.processor.watch_url(video_id), client=self.client
        )
        if not info:
            raise UpstreamFetchFailure(
                f"Failed to resolve video {video_id}: Failed to get video details"
            )
        return self.processor.build_video_song(video_id, info, self, member, metadata)

    async def _process_track(self, track: Any, member: Any, metadata: Any) -> Optional[Song]:
        return self.processor.safe_build_song(track, self, member, metadata)

    async def _process_tracks(
        self, tracks: List[Any], member: Any = None, metadata: Any = None
    ) -> List[Song]:
        """Convert tracks, concurrently or one by one depending on ``parallel``.

        Order is preserved; tracks that fail to convert are dropped.
        """
        if self.config.parallel:
            results = await asyncio.gather(
                *(self._process_track(track, member, metadata) for track in tracks)
            )
        else:
            results = []
            for track in tracks:
                results.append(await self._process_track(track, member, metadata))
        return [song for song in results if song]

    async def search_song(
        self, query: str, member: Any = None, metadata: Any = None
    ) -> Optional[Song]:
        """Return the top song result for ``query``, or None."""
        try:
            self.logger.info(f'Searching for: "{query}"')
            results = await self.search_client.search_songs(query)
            if not results:
                self.logger.info("No search results found")
                return None

            first = results[0]
            if not isinstance(first, dict) or not first.get("videoId"):
                self.logger.info("First result has no videoId")
                return None
            return self.processor.build_song(first, self, member, metadata)
        except Exception as e:
            self.logger.error(f"Search error: {e}")
            return None

    async def search_songs(
        self,
        query: str,
        kind: str = "song",
        limit: int = DEFAULT_SEARCH_LIMIT,
        member: Any = None,
        metadata: Any = None,
    ) -> List[Song]:
        """Search for up to ``limit`` songs.

        Args:
            query: Search query.
            kind: 'song', 'album', 'playlist' or 'artist'.  Results without a
                video ID (albums, playlists and artists usually) are skipped.
            limit: Maximum number of results to return.

        Returns:
            Matching songs; empty on any upstream failure.
        """
        kind = kind or "song"
        if not isinstance(limit, int) or limit < 1:
            limit = DEFAULT_SEARCH_LIMIT
        searches = {
            "song": self.search_client.search_songs,
            "album": self.search_client.search_albums,
            "playlist": self.search_client.search_playlists,
            "artist": self.search_client.search_artists,
        }
        search = searches.get(kind, self.search_client.search_songs)

        try:
            self.logger.info(f'Searching for {kind}s with query: "{query}" (limit: {limit})')
            results = await search(query)
        except Exception as e:
            self.logger.error(f"Search songs error: {e}")
            return []

        if not results:
            self.logger.info(f"No {kind} search results found")
            return []

        songs = []
        for result in results[:limit]:
            if not isinstance(result, dict) or not result.get("videoId"):
                self.logger.debug("Result skipped - no videoId")
                continue
            song = self.processor.safe_build_song(result, self, member, metadata)
            if song:
                songs.append(song)
        return songs

    async def get_stream_url(self, song: Song) -> str:
        """Return a direct URL for the best audio-only stream of ``song``.

        Raises:
            InvalidInput: If ``song`` has no ID.
            UpstreamFetchFailure: If yt-dlp fails or no audio format exists.
        """
        if not song or not getattr(song, "id", None):
            raise InvalidInput(f"Expected a Song with an id, got {song!r}")

        client = self.client
        criteria: Dict[str, Any] = dict(DEFAULT_FORMAT_CRITERIA)
        criteria.update(self._host_format_options())

        try:
            self.logger.debug(f"Getting stream URL for song ID: {song.id}")
            info = await self.stream_client.get_info(
                self.processor.watch_url(song.id), client=client
            )
            try:
                stream_format = self.stream_client.choose_format(
                    info.get("formats") or [], criteria
                )
            except ValueError:
                stream_format = None

            if not stream_format or not stream_format.get("url"):
                raise UpstreamFetchFailure(f"No suitable audio format found for {song.id}")
            return stream_format["url"]
        except YTMusicPluginError:
            raise
        except Exception as e:
            self.logger.error(f"Error getting stream URL for {song.id}: {e}")
            raise UpstreamFetchFailure(f"Failed to get stream URL for {song.id}: {e}") from e

    def _host_format_options(self) -> Dict[str, Any]:
        options = getattr(self.host, "stream_options", None) or {}
        return {key: options[key] for key in _FORMAT_KEYS if options.get(key)}

    async def get_related_songs(self, song: Song) -> List[Song]:
        """Return songs related to ``song``; empty when there are none."""
        if not song or not getattr(song, "id", None):
            self.logger.info("Cannot get related songs: invalid song or missing ID")
            return []

        try:
            related = await self.search_client.get_related(song.id)
        except Exception as e:
            self.logger.error(f"Failed to get related songs for {song.id}: {e}")
            return []

        if not isinstance(related, dict) or not isinstance(related.get("tracks"), list):
            self.logger.info("No related tracks found")
            return []
        return await self._process_tracks(related["tracks"])

    def destroy(self) -> None:
        """Stop cookie auto-refresh."""
        if self.cookie_manager:
            self.cookie_manager.destroy()
            self.logger.info("Cookie manager stopped")


def _first_match(patterns, url: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None
