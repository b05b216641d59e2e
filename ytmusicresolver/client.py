#!/usr/bin/env python3

from typing import Any, Dict, List, Optional
import asyncio
import logging

from ytmusicapi import YTMusic


class YouTubeMusicClient:
    """Async client for the YouTube Music search API.

    This class is responsible solely for making API calls to YouTube Music and
    for smoothing over differences between ytmusicapi's response shapes.
    ytmusicapi is synchronous, so every call runs in a worker thread.
    """

    SEARCH_FILTERS = {
        "song": "songs",
        "album": "albums",
        "playlist": "playlists",
        "artist": "artists",
    }

    def __init__(
        self,
        ytmusic: Optional[YTMusic] = None,
        language: str = "en",
        location: str = "",
        search_limit: int = 20,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the YouTube Music API client.

        Args:
            ytmusic: Preconfigured YTMusic instance; created by initialize() if None.
            language: Response language passed to YTMusic.
            location: Response location passed to YTMusic.
            search_limit: Number of results requested per search.
            logger: Optional logger instance; defaults to a new logger if None.
        """
        self.logger = logger or logging.getLogger("YouTubeMusicClient")
        self.ytmusic = ytmusic
        self.language = language
        self.location = location
        self.search_limit = search_limit

    @property
    def initialized(self) -> bool:
        return self.ytmusic is not None

    async def initialize(self) -> None:
        """Create the underlying YTMusic instance (unauthenticated)."""
        if self.ytmusic is None:
            self.ytmusic = await asyncio.to_thread(
                YTMusic, language=self.language, location=self.location
            )
        self.logger.info("YouTubeMusicClient initialized")

    async def _call(self, method: str, *args, **kwargs) -> Any:
        if self.ytmusic is None:
            raise RuntimeError("YouTube Music client is not initialized")
        return await asyncio.to_thread(getattr(self.ytmusic, method), *args, **kwargs)

    async def get_playlist(self, playlist_id: str, limit: Optional[int] = None) -> Optional[Dict]:
        """Fetch a playlist by its ID.

        Args:
            playlist_id: The playlist ID.
            limit: Maximum number of tracks to retrieve (None for all).

        Returns:
            Playlist dictionary with a 'tracks' list, or None if not found.
        """
        try:
            return await self._call("get_playlist", playlist_id, limit=limit)
        except Exception as e:
            self.logger.error(f"Failed to fetch playlist {playlist_id}: {e}")
            raise

    async def get_album(self, album_id: str) -> Optional[Dict]:
        """Fetch an album by its browse ID.

        Args:
            album_id: The album browse ID (e.g. 'MPREb_...').

        Returns:
            Album dictionary with a 'tracks' list, or None if not found.
        """
        try:
            return await self._call("get_album", album_id)
        except Exception as e:
            self.logger.error(f"Failed to fetch album {album_id}: {e}")
            raise

    async def get_artist(self, artist_id: str) -> Optional[Dict]:
        """Fetch an artist by their channel ID.

        ytmusicapi nests the song list under ``songs.results``; it is lifted
        so that ``songs`` is always a plain list.

        Args:
            artist_id: The artist channel ID.

        Returns:
            Artist dictionary with a 'songs' list, or None if not found.
        """
        try:
            artist = await self._call("get_artist", artist_id)
        except Exception as e:
            self.logger.error(f"Failed to fetch artist {artist_id}: {e}")
            raise

        if not artist:
            return None
        songs = artist.get("songs")
        if isinstance(songs, dict):
            songs = songs.get("results")
        return dict(artist, songs=songs if isinstance(songs, list) else [])

    async def get_related(self, video_id: str, limit: int = 25) -> Optional[Dict]:
        """Fetch tracks related to a song from its watch playlist.

        Watch playlist entries use 'length' and 'thumbnail'; they are renamed to
        'duration' and 'thumbnails' to match the other endpoints.  The seed
        track itself is dropped.

        Args:
            video_id: The seed song's video ID.
            limit: Minimum number of tracks to ask for.

        Returns:
            Dictionary with a 'tracks' list, or None if nothing was returned.
        """
        try:
            watch = await self._call("get_watch_playlist", videoId=video_id, limit=limit)
        except Exception as e:
            self.logger.error(f"Failed to fetch related tracks for {video_id}: {e}")
            raise

        if not watch or not isinstance(watch.get("tracks"), list):
            return None

        tracks = []
        for track in watch["tracks"]:
            if not isinstance(track, dict) or track.get("videoId") == video_id:
                continue
            normalized = dict(track)
            if "duration" not in normalized and "length" in normalized:
                normalized["duration"] = normalized["length"]
            if "thumbnails" not in normalized and "thumbnail" in normalized:
                normalized["thumbnails"] = normalized["thumbnail"]
            tracks.append(normalized)
        return {"tracks": tracks, "related": watch.get("related")}

    async def search(self, query: str, kind: str = "song") -> List[Dict]:
        """Search YouTube Music for one kind of item.

        Args:
            query: Search query string (e.g., 'Oasis Wonderwall').
            kind: 'song', 'album', 'playlist' or 'artist'.

        Returns:
            List of search result dictionaries (empty on failure).
        """
        filter_type = self.SEARCH_FILTERS.get(kind, "songs")
        self.logger.debug(f"Searching '{query}' with filter '{filter_type}'")
        try:
            results = await self._call(
                "search", query, filter=filter_type, limit=self.search_limit
            )
        except Exception as e:
            self.logger.error(f"Search failed: {e}")
            return []
        self.logger.debug(f"Search returned {len(results or [])} results")
        return results or []

    async def search_songs(self, query: str) -> List[Dict]:
        return await self.search(query, "song")

    async def search_albums(self, query: str) -> List[Dict]:
        return await self.search(query, "album")

    async def search_playlists(self, query: str) -> List[Dict]:
        return await self.search(query, "playlist")

    async def search_artists(self, query: str) -> List[Dict]:
        return await self.search(query, "artist")
