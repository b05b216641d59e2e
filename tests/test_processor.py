#!/usr/bin/env python3

"""Tests for mapping API payloads onto songs."""

import pytest

from ytmusicresolver.processor import TrackProcessor


@pytest.fixture
def processor():
    return TrackProcessor()


@pytest.mark.parametrize(
    "value, expected",
    [
        ("3:45", 225),
        ("1:02:03", 3723),
        ("0:07", 7),
        ("garbage", 0),
        ("", 0),
        (None, 0),
        ("1:2:3:4", 0),
        ("-1:30", 0),
        (225, 0),
    ],
)
def test_parse_duration(processor, value, expected):
    assert processor.parse_duration(value) == expected


def test_clean_artists(processor):
    artists = [{"name": "Oasis", "id": "UC1"}, {"name": "Noel Gallagher"}, {"id": "UC3"}]
    assert processor.clean_artists(artists) == "Oasis, Noel Gallagher"
    assert processor.clean_artists([]) == "Unknown Artist"
    assert processor.clean_artists(None) == "Unknown Artist"


def test_best_thumbnail_is_last_entry(processor):
    item = {"thumbnails": [{"url": "small.jpg"}, {"url": "large.jpg"}]}
    assert processor.best_thumbnail(item) == "large.jpg"
    assert processor.best_thumbnail({"thumbnails": []}) is None
    assert processor.best_thumbnail({}) is None


def test_build_song_maps_fields(processor):
    track = {
        "videoId": "dQw4w9WgXcQ",
        "title": "Wonderwall",
        "artists": [{"name": "Oasis"}],
        "duration": "4:18",
        "thumbnails": [{"url": "a.jpg"}, {"url": "b.jpg"}],
    }
    song = processor.build_song(track, plugin="plugin", member="member", metadata={"k": 1})

    assert song.id == "dQw4w9WgXcQ"
    assert song.name == "Wonderwall"
    assert song.url == "https://music.youtube.com/watch?v=dQw4w9WgXcQ"
    assert song.duration == 258
    assert song.thumbnail == "b.jpg"
    assert song.uploader.name == "Oasis"
    assert song.source == "youtube-music"
    assert song.play_from_source is True
    assert song.member == "member"
    assert song.metadata == {"k": 1}


def test_build_song_defaults(processor):
    song = processor.build_song({"videoId": "dQw4w9WgXcQ"})
    assert song.name == "Unknown Title"
    assert song.uploader.name == "Unknown Artist"
    assert song.thumbnail is None
    assert song.duration == 0


def test_build_song_prefers_duration_seconds(processor):
    song = processor.build_song({"videoId": "abc", "duration": "1:00", "duration_seconds": 61})
    assert song.duration == 61


def test_build_song_without_video_id(processor):
    assert processor.build_song({"title": "No stream"}) is None
    assert processor.build_song("not a dict") is None


def test_safe_build_song_swallows_errors(processor, monkeypatch):
    def broken_thumbnail(item):
        raise KeyError("url")

    monkeypatch.setattr(processor, "best_thumbnail", broken_thumbnail)
    assert processor.safe_build_song({"videoId": "abc"}) is None


def test_build_video_song(processor):
    info = {
        "title": "Live Forever",
        "duration": 276.0,
        "view_count": 1000,
        "uploader": "Oasis - Topic",
        "channel_url": "https://www.youtube.com/channel/UC123",
        "thumbnail": "fallback.jpg",
        "is_live": False,
    }
    song = processor.build_video_song("dQw4w9WgXcQ", info)

    assert song.name == "Live Forever"
    assert song.duration == 276
    assert song.views == 1000
    assert song.uploader.name == "Oasis"
    assert song.uploader.url == "https://www.youtube.com/channel/UC123"
    assert song.thumbnail == "fallback.jpg"


def test_build_video_song_prefers_artists_list(processor):
    song = processor.build_video_song("abc", {"artists": ["A", "B"], "uploader": "Label"})
    assert song.uploader.name == "A, B"
    assert song.name == "Unknown Title"
