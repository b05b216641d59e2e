#!/usr/bin/env python3

import unittest
from unittest.mock import MagicMock, patch

from ytmusicresolver.models import Credential
from ytmusicresolver.yt_dlp_utils import StreamClient, get_url_video_id

FORMATS = [
    {"format_id": "139", "url": "https://x/139", "acodec": "mp4a", "vcodec": "none", "abr": 48},
    {"format_id": "251", "url": "https://x/251", "acodec": "opus", "vcodec": "none", "abr": 160},
    {"format_id": "140", "url": "https://x/140", "acodec": "mp4a", "vcodec": "none", "abr": 129},
    {"format_id": "18", "url": "https://x/18", "acodec": "mp4a", "vcodec": "avc1", "tbr": 500},
    {"format_id": "137", "url": "https://x/137", "acodec": "none", "vcodec": "avc1", "tbr": 4000},
]


class TestVideoId(unittest.TestCase):
    def test_supported_urls(self):
        for url in (
            "https://music.youtube.com/watch?v=dQw4w9WgXcQ&si=abc",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ?t=5",
            "https://www.youtube.com/shorts/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "youtube.com/watch?v=dQw4w9WgXcQ",
        ):
            with self.subTest(url=url):
                self.assertEqual(get_url_video_id(url), "dQw4w9WgXcQ")

    def test_rejected_urls(self):
        for url in (
            "https://example.com/watch?v=dQw4w9WgXcQ",
            "https://www.youtube.com/watch",
            "https://www.youtube.com/watch?v=short",
            "just some text",
        ):
            with self.subTest(url=url), self.assertRaises(ValueError):
                get_url_video_id(url)

    def test_get_video_id_accepts_bare_id(self):
        self.assertEqual(StreamClient.get_video_id("dQw4w9WgXcQ"), "dQw4w9WgXcQ")
        self.assertTrue(StreamClient.validate_url("https://youtu.be/dQw4w9WgXcQ"))
        self.assertFalse(StreamClient.validate_url("https://example.com"))
        self.assertFalse(StreamClient.validate_url(None))


class TestChooseFormat(unittest.TestCase):
    def setUp(self):
        self.client = StreamClient()

    def test_highest_audio_only(self):
        chosen = self.client.choose_format(
            FORMATS, {"filter": "audioonly", "quality": "highestaudio"}
        )
        self.assertEqual(chosen["format_id"], "251")

    def test_lowest_audio_only(self):
        chosen = self.client.choose_format(
            FORMATS, {"filter": "audioonly", "quality": "lowestaudio"}
        )
        self.assertEqual(chosen["format_id"], "139")

    def test_specific_format_id(self):
        chosen = self.client.choose_format(FORMATS, {"filter": None, "quality": "18"})
        self.assertEqual(chosen["format_id"], "18")

    def test_highest_and_lowest(self):
        self.assertEqual(
            self.client.choose_format(FORMATS, {"filter": "videoonly", "quality": "highest"})[
                "format_id"
            ],
            "137",
        )
        self.assertEqual(
            self.client.choose_format(FORMATS, {"quality": "lowest"})["format_id"], "139"
        )

    def test_no_audio_only_format(self):
        with self.assertRaises(ValueError) as ctx:
            self.client.choose_format(
                FORMATS[3:], {"filter": "audioonly", "quality": "highestaudio"}
            )
        self.assertIn("No such format found", str(ctx.exception))

    def test_formats_without_url_are_ignored(self):
        formats = [dict(FORMATS[1], url=None), FORMATS[0]]
        chosen = self.client.choose_format(formats, {"filter": "audioonly"})
        self.assertEqual(chosen["format_id"], "139")


class TestAuthenticatedClient(unittest.IsolatedAsyncioTestCase):
    def test_create_authenticated_client_merges_options(self):
        client = StreamClient(params={"socket_timeout": 5})
        authenticated = client.create_authenticated_client(
            [Credential(name="SID", value="abc")], {"localAddress": "10.0.0.2"}, version=3
        )

        self.assertEqual(authenticated.version, 3)
        self.assertEqual(authenticated.params["socket_timeout"], 5)
        self.assertEqual(authenticated.params["source_address"], "10.0.0.2")
        self.assertEqual(len(authenticated.cookies), 1)

    @patch("ytmusicresolver.yt_dlp_utils.YoutubeDL")
    def test_open_copies_cookies(self, mock_ydl_class):
        client = StreamClient().create_authenticated_client(
            [Credential(name="SID", value="abc"), Credential(name="HSID", value="def")]
        )
        ydl = client.open()

        self.assertIs(ydl, mock_ydl_class.return_value)
        self.assertEqual(ydl.cookiejar.set_cookie.call_count, 2)

    @patch("ytmusicresolver.yt_dlp_utils.YoutubeDL")
    async def test_get_info_uses_client(self, mock_ydl_class):
        ydl = MagicMock()
        ydl.__enter__.return_value = ydl
        ydl.extract_info.return_value = {"id": "dQw4w9WgXcQ", "formats": []}
        mock_ydl_class.return_value = ydl

        stream = StreamClient()
        authenticated = stream.create_authenticated_client([Credential(name="SID", value="x")])
        info = await stream.get_info(
            "https://music.youtube.com/watch?v=dQw4w9WgXcQ", client=authenticated
        )

        self.assertEqual(info["id"], "dQw4w9WgXcQ")
        ydl.extract_info.assert_called_once_with(
            "https://music.youtube.com/watch?v=dQw4w9WgXcQ", download=False
        )
        ydl.cookiejar.set_cookie.assert_called_once()

    @patch("ytmusicresolver.yt_dlp_utils.YoutubeDL")
    async def test_get_info_empty_result(self, mock_ydl_class):
        ydl = MagicMock()
        ydl.__enter__.return_value = ydl
        ydl.extract_info.return_value = None
        mock_ydl_class.return_value = ydl

        with self.assertRaises(ValueError):
            await StreamClient().get_info("https://music.youtube.com/watch?v=dQw4w9WgXcQ")


if __name__ == "__main__":
    unittest.main()
