#!/usr/bin/env python3

import unittest
from unittest.mock import MagicMock, patch

from ytmusicresolver.client import YouTubeMusicClient


class TestYouTubeMusicClient(unittest.IsolatedAsyncioTestCase):
    """Test case for the async YouTube Music API wrapper."""

    def setUp(self):
        self.ytmusic = MagicMock()
        self.client = YouTubeMusicClient(ytmusic=self.ytmusic)

    @patch("ytmusicresolver.client.YTMusic")
    async def test_initialize_creates_ytmusic(self, mock_ytmusic):
        client = YouTubeMusicClient(language="de")
        self.assertFalse(client.initialized)
        await client.initialize()
        mock_ytmusic.assert_called_once_with(language="de", location="")
        self.assertTrue(client.initialized)

    async def test_calls_before_initialize_fail(self):
        with self.assertRaises(RuntimeError):
            await YouTubeMusicClient().get_album("MPREb_abc")

    async def test_get_playlist_passes_limit(self):
        self.ytmusic.get_playlist.return_value = {"title": "Mix", "tracks": []}
        result = await self.client.get_playlist("PL123", limit=10)
        self.assertEqual(result["title"], "Mix")
        self.ytmusic.get_playlist.assert_called_once_with("PL123", limit=10)

    async def test_get_playlist_error_propagates(self):
        self.ytmusic.get_playlist.side_effect = Exception("Server returned HTTP 404")
        with self.assertRaises(Exception):
            await self.client.get_playlist("PL123")

    async def test_get_artist_flattens_songs(self):
        self.ytmusic.get_artist.return_value = {
            "name": "Oasis",
            "songs": {"browseId": "VLx", "results": [{"videoId": "a"}]},
        }
        artist = await self.client.get_artist("UC123")
        self.assertEqual(artist["songs"], [{"videoId": "a"}])

    async def test_get_artist_without_songs(self):
        self.ytmusic.get_artist.return_value = {"name": "Nobody"}
        artist = await self.client.get_artist("UC123")
        self.assertEqual(artist["songs"], [])

        self.ytmusic.get_artist.return_value = None
        self.assertIsNone(await self.client.get_artist("UC123"))

    async def test_get_related_normalizes_tracks(self):
        self.ytmusic.get_watch_playlist.return_value = {
            "tracks": [
                {"videoId": "seed", "title": "Seed"},
                {"videoId": "b", "title": "B", "length": "3:10", "thumbnail": [{"url": "t"}]},
            ],
            "related": "MPTRt_x",
        }
        related = await self.client.get_related("seed")

        self.assertEqual(len(related["tracks"]), 1)
        self.assertEqual(related["tracks"][0]["duration"], "3:10")
        self.assertEqual(related["tracks"][0]["thumbnails"], [{"url": "t"}])
        self.ytmusic.get_watch_playlist.assert_called_once_with(videoId="seed", limit=25)

    async def test_get_related_absent(self):
        self.ytmusic.get_watch_playlist.return_value = {}
        self.assertIsNone(await self.client.get_related("seed"))

    async def test_search_filters(self):
        self.ytmusic.search.return_value = [{"videoId": "a"}]
        self.assertEqual(await self.client.search_albums("Oasis"), [{"videoId": "a"}])
        self.ytmusic.search.assert_called_once_with("Oasis", filter="albums", limit=20)

    async def test_search_failure_returns_empty(self):
        self.ytmusic.search.side_effect = Exception("network down")
        self.assertEqual(await self.client.search_songs("Oasis"), [])

        self.ytmusic.search.side_effect = None
        self.ytmusic.search.return_value = None
        self.assertEqual(await self.client.search_artists("Oasis"), [])


if __name__ == "__main__":
    unittest.main()
