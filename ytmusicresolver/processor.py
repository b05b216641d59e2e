#!/usr/bin/env python3

from typing import Any, Dict, Optional
import logging

from ytmusicresolver.constants import UNKNOWN_ARTIST, UNKNOWN_TITLE, WATCH_URL
from ytmusicresolver.models import Song, Uploader


class TrackProcessor:
    """Maps search API and yt-dlp payloads onto :class:`Song` objects."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """Initialize the track processor.

        Args:
            logger: Optional logger instance. Defaults to a new logger if None.
        """
        self.logger = logger or logging.getLogger("TrackProcessor")

    @staticmethod
    def watch_url(video_id: str) -> str:
        return WATCH_URL.format(video_id=video_id)

    def clean_artists(self, raw_artists: Any) -> str:
        """Join artist names with ", ".

        Args:
            raw_artists: List of artist dictionaries with 'name' keys.

        Returns:
            The joined names, or "Unknown Artist" if there are none.
        """
        if not isinstance(raw_artists, list):
            return UNKNOWN_ARTIST
        names = [
            artist.get("name")
            for artist in raw_artists
            if isinstance(artist, dict) and artist.get("name")
        ]
        return ", ".join(names) if names else UNKNOWN_ARTIST

    def _clean_artist_name(self, name: str) -> str:
        """Remove the '- Topic' suffix YouTube adds to auto-generated channels."""
        return name[:-8] if name.endswith(" - Topic") else name

    def parse_duration(self, duration: Any) -> int:
        """Parse 'MM:SS' or 'HH:MM:SS' into seconds.

        Returns:
            Total seconds, or 0 for anything else.
        """
        if not duration or not isinstance(duration, str):
            return 0
        try:
            parts = [int(p) for p in duration.strip().split(":")]
        except ValueError:
            return 0
        if any(p < 0 for p in parts):
            return 0
        if len(parts) == 2:
            return parts[0] * 60 + parts[1]
        if len(parts) == 3:
            return parts[0] * 3600 + parts[1] * 60 + parts[2]
        return 0

    def track_duration(self, track: Dict) -> int:
        seconds = track.get("duration_seconds")
        if isinstance(seconds, int) and not isinstance(seconds, bool) and seconds >= 0:
            return seconds
        return self.parse_duration(track.get("duration"))

    def best_thumbnail(self, item: Any) -> Optional[str]:
        """Return the URL of the last (largest) thumbnail, if any."""
        if not isinstance(item, dict):
            return None
        thumbnails = item.get("thumbnails")
        if isinstance(thumbnails, list) and thumbnails:
            last = thumbnails[-1]
            if isinstance(last, dict):
                return last.get("url")
        return None

    def build_song(
        self, track: Any, plugin=None, member=None, metadata=None
    ) -> Optional[Song]:
        """Build a song from a search API track entry.

        Returns:
            The song, or None when the entry has no video ID.
        """
        if not isinstance(track, dict) or not track.get("videoId"):
            return None

        video_id = track["videoId"]
        return Song(
            id=video_id,
            name=track.get("title") or track.get("name") or UNKNOWN_TITLE,
            url=self.watch_url(video_id),
            thumbnail=self.best_thumbnail(track),
            duration=self.track_duration(track),
            uploader=Uploader(name=self.clean_artists(track.get("artists"))),
            plugin=plugin,
            member=member,
            metadata=metadata,
        )

    def build_video_song(
        self, video_id: str, info: Dict, plugin=None, member=None, metadata=None
    ) -> Song:
        """Build a song from yt-dlp's info dictionary for a single video."""
        thumbnail = self.best_thumbnail(info) or info.get("thumbnail")

        artists = info.get("artists")
        if isinstance(artists, list) and artists:
            uploader_name = ", ".join(str(a) for a in artists)
        else:
            channel = info.get("artist") or info.get("uploader") or info.get("channel")
            uploader_name = self._clean_artist_name(channel) if channel else UNKNOWN_ARTIST

        return Song(
            id=video_id,
            name=info.get("title") or UNKNOWN_TITLE,
            url=self.watch_url(video_id),
            thumbnail=thumbnail,
            duration=_as_int(info.get("duration")),
            is_live=bool(info.get("is_live")),
            views=_as_int(info.get("view_count")),
            uploader=Uploader(
                name=uploader_name,
                url=info.get("channel_url") or info.get("uploader_url"),
            ),
            plugin=plugin,
            member=member,
            metadata=metadata,
        )

    def safe_build_song(self, track: Any, plugin=None, member=None, metadata=None) -> Optional[Song]:
        try:
            return self.build_song(track, plugin, member, metadata)
        except Exception as e:
            video_id = track.get("videoId") if isinstance(track, dict) else None
            self.logger.error(f"Error processing track {video_id or 'unknown'}: {e}")
            return None


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0
