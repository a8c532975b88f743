import re

import pytest

from hls_cli.utils.url import filename_from_url, is_valid_url, proxied_url, resolve_url


@pytest.mark.parametrize(
    ("base", "relative", "expected"),
    [
        ("https://a.com/x/y/index.m3u8", "seg.ts", "https://a.com/x/y/seg.ts"),
        ("https://a.com/x/y/index.m3u8?t=1", "seg.ts?t=2", "https://a.com/x/y/seg.ts?t=2"),
        ("https://a.com/x/y/index.m3u8", "/abs/seg.ts", "https://a.com/abs/seg.ts"),
        ("https://a.com/x/y/index.m3u8", "http://b.com/s.ts", "http://b.com/s.ts"),
        ("https://a.com/x/y/index.m3u8", "//c.com/s.ts", "https://c.com/s.ts"),
    ],
)
def test_resolve_url(base, relative, expected):
    assert resolve_url(base, relative) == expected


def test_is_valid_url():
    assert is_valid_url("https://example.com/a.m3u8")
    assert not is_valid_url("example.com/a.m3u8")
    assert not is_valid_url("not a url")


def test_proxied_url_encodes_whole_target():
    proxied = proxied_url("https://a.com/x.m3u8?t=1&u=2", "https://corsproxy.io/?{url}")
    assert proxied == "https://corsproxy.io/?https%3A%2F%2Fa.com%2Fx.m3u8%3Ft%3D1%26u%3D2"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://a.com/shows/episode-1.m3u8", "episode-1.ts"),
        ("https://a.com/v/my movie.final.m3u8?x=1", "my_movie.ts"),
        ("https://a.com/v/clip(1).m3u8", "clip_1_.ts"),
    ],
)
def test_filename_from_url(url, expected):
    assert filename_from_url(url, "ts") == expected


@pytest.mark.parametrize(
    "url", ["https://a.com/video.m3u8", "https://a.com/", "https://a.com/.m3u8"]
)
def test_filename_falls_back_to_timestamp(url):
    assert re.fullmatch(r"video_\d+\.mp4", filename_from_url(url, "mp4"))
