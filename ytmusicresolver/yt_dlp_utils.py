#!/usr/bin/env python3

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional
from urllib.parse import parse_qs, urlparse
import asyncio
import logging
import re

from requests.cookies import RequestsCookieJar
from yt_dlp import YoutubeDL

from ytmusicresolver.http_utils import build_cookie_jar, normalize_client_options
from ytmusicresolver.models import Credential

_VIDEO_HOSTS = {
    "youtube.com",
    "www.youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "gaming.youtube.com",
    "www.youtube-nocookie.com",
}
_SHORT_HOSTS = {"youtu.be", "www.youtu.be"}
_ID_RE = re.compile(r"^[\w-]{11}$")
_ID_PATH_RE = re.compile(r"^/(?:embed|v|shorts|live|e)/([\w-]{11})")


def get_url_video_id(url: str) -> str:
    """Extract the 11-character video ID from a YouTube URL.

    Raises:
        ValueError: If the URL is not a YouTube video URL.
    """
    link = url.strip()
    if "://" not in link:
        link = "https://" + link
    parsed = urlparse(link)
    host = (parsed.hostname or "").lower()

    if host in _SHORT_HOSTS:
        video_id = parsed.path.lstrip("/").split("/")[0]
    elif host in _VIDEO_HOSTS:
        video_id = parse_qs(parsed.query).get("v", [""])[0]
        if not video_id:
            match = _ID_PATH_RE.match(parsed.path)
            video_id = match.group(1) if match else ""
    else:
        raise ValueError(f"Not a YouTube domain: {url}")

    if not video_id:
        raise ValueError(f"No video id found: {url}")
    video_id = video_id[:11]
    if not _ID_RE.match(video_id):
        raise ValueError(f"Video id ({video_id}) does not match expected format")
    return video_id


@dataclass(frozen=True, eq=False)
class AuthenticatedClient:
    """yt-dlp parameters bound to one cookie set.

    Instances are never modified; a new cookie set produces a new client with
    a higher ``version``.
    """

    cookies: RequestsCookieJar
    params: Dict[str, Any]
    version: int = 1

    def open(self) -> YoutubeDL:
        """Create a ``YoutubeDL`` that sends this client's cookies."""
        ydl = YoutubeDL(dict(self.params))
        for cookie in self.cookies:
            ydl.cookiejar.set_cookie(cookie)
        return ydl


class StreamClient:
    """Fetches video metadata and stream formats through yt-dlp.

    yt-dlp is synchronous, so extraction runs in a worker thread to keep the
    event loop free.
    """

    def __init__(
        self,
        params: Optional[Mapping[str, Any]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger("StreamClient")
        self.params = normalize_client_options(params)

    @staticmethod
    def validate_url(url: str) -> bool:
        if not isinstance(url, str):
            return False
        try:
            get_url_video_id(url)
        except ValueError:
            return False
        return True

    @staticmethod
    def get_video_id(value: str) -> str:
        """Return the video ID of a URL, or ``value`` itself if it already is one.

        Raises:
            ValueError: If no video ID can be found.
        """
        if _ID_RE.match(value):
            return value
        return get_url_video_id(value)

    async def get_info(
        self, url: str, client: Optional[AuthenticatedClient] = None
    ) -> Dict[str, Any]:
        """Fetch full metadata, including formats, for a video URL.

        Args:
            url: Watch URL of the video.
            client: Authenticated client to send cookies with; anonymous if None.

        Raises:
            Exception: Whatever yt-dlp raises, usually ``DownloadError``.
        """

        def _extract() -> Optional[Dict[str, Any]]:
            ydl = client.open() if client else YoutubeDL(dict(self.params))
            with ydl:
                return ydl.extract_info(url, download=False)

        self.logger.debug(
            f"Extracting info for {url} (client version: {client.version if client else 'none'})"
        )
        info = await asyncio.to_thread(_extract)
        if not info:
            raise ValueError(f"No information returned for {url}")
        return info

    def choose_format(
        self, formats: Iterable[Dict[str, Any]], criteria: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Pick one format out of yt-dlp's format list.

        Args:
            formats: Format dictionaries, ordered worst to best as yt-dlp
                returns them.
            criteria: ``filter`` (``audioonly``, ``videoonly``,
                ``audioandvideo`` or None) and ``quality`` (``highestaudio``,
                ``lowestaudio``, ``highest``, ``lowest`` or a format ID).

        Raises:
            ValueError: If no format matches.
        """
        quality = criteria.get("quality", "highestaudio")
        candidates = _filter_formats(formats, criteria.get("filter"))

        if quality in ("highestaudio", "lowestaudio"):
            candidates = [f for f in candidates if _has_audio(f)]
            if candidates:
                ranked = sorted(candidates, key=_audio_bitrate)
                return ranked[-1] if quality == "highestaudio" else ranked[0]
        elif quality == "highest" and candidates:
            return candidates[-1]
        elif quality == "lowest" and candidates:
            return candidates[0]
        else:
            for fmt in candidates:
                if str(fmt.get("format_id")) == str(quality):
                    return fmt

        raise ValueError(f"No such format found: {quality}")

    def create_authenticated_client(
        self,
        credentials: List[Credential],
        options: Optional[Mapping[str, Any]] = None,
        version: int = 1,
    ) -> AuthenticatedClient:
        params = dict(self.params)
        params.update(normalize_client_options(options))
        return AuthenticatedClient(
            cookies=build_cookie_jar(credentials), params=params, version=version
        )


def _has_audio(fmt: Dict[str, Any]) -> bool:
    return fmt.get("acodec") not in (None, "none")


def _has_video(fmt: Dict[str, Any]) -> bool:
    return fmt.get("vcodec") not in (None, "none")


def _audio_bitrate(fmt: Dict[str, Any]) -> float:
    return float(fmt.get("abr") or fmt.get("tbr") or 0)


def _filter_formats(formats: Iterable[Dict[str, Any]], name: Optional[str]) -> List[Dict]:
    formats = [f for f in formats or [] if isinstance(f, dict) and f.get("url")]
    if name == "audioonly":
        return [f for f in formats if _has_audio(f) and not _has_video(f)]
    if name == "videoonly":
        return [f for f in formats if _has_video(f) and not _has_audio(f)]
    if name == "audioandvideo":
        return [f for f in formats if _has_audio(f) and _has_video(f)]
    return formats
