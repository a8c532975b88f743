import asyncio

import aiohttp
import pytest

from hls_cli.core.downloader import HLSDownloader
from hls_cli.exceptions import (
    Aborted,
    DownloadInProgress,
    ManifestFetchFailed,
    NotVariantPlaylist,
    SegmentFetchFailed,
)
from hls_cli.hls.crypto import derive_iv
from tests.fakes import FakeTransport, encrypt

PLAYLIST_URL = "https://cdn.example.com/vod/index.m3u8"
KEY_URL = "https://cdn.example.com/vod/k.bin"

ENCRYPTED_PLAYLIST = (
    "#EXTM3U\n"
    "#EXT-X-TARGETDURATION:10\n"
    "#EXT-X-MEDIA-SEQUENCE:100\n"
    '#EXT-X-KEY:METHOD=AES-128,URI="k.bin"\n'
    "#EXTINF:10,\n"
    "a.ts\n"
    "#EXTINF:10,\n"
    "b.ts\n"
    "#EXT-X-ENDLIST\n"
)


@pytest.fixture
def encrypted_stream(aes_key):
    return FakeTransport(
        {
            PLAYLIST_URL: ENCRYPTED_PLAYLIST,
            KEY_URL: aes_key,
            "https://cdn.example.com/vod/a.ts": encrypt(b"AAAA", aes_key, derive_iv(100)),
            "https://cdn.example.com/vod/b.ts": encrypt(b"BBBB", aes_key, derive_iv(101)),
        }
    )


async def test_end_to_end_encrypted_download(encrypted_stream):
    downloader = HLSDownloader(encrypted_stream)

    segments, metadata = await downloader.fetch_manifest(PLAYLIST_URL)
    buffers = await downloader.download_segments(segments)

    assert metadata.estimated_duration == 20
    assert downloader.stitch_segments(buffers) == b"AAAABBBB"
    assert encrypted_stream.count(KEY_URL) == 1
    assert not downloader.is_downloading


async def test_manifest_transport_error_is_wrapped():
    downloader = HLSDownloader(FakeTransport())
    with pytest.raises(ManifestFetchFailed, match="Failed to fetch manifest"):
        await downloader.fetch_manifest(PLAYLIST_URL)


async def test_manifest_timeout_is_wrapped():
    downloader = HLSDownloader(FakeTransport({PLAYLIST_URL: asyncio.TimeoutError()}))
    with pytest.raises(ManifestFetchFailed):
        await downloader.fetch_manifest(PLAYLIST_URL)


async def test_master_playlist_is_rejected():
    transport = FakeTransport(
        {PLAYLIST_URL: "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=1\nlow.m3u8\n"}
    )
    with pytest.raises(NotVariantPlaylist):
        await HLSDownloader(transport).fetch_manifest(PLAYLIST_URL)


async def test_key_cache_is_reset_between_downloads(encrypted_stream):
    downloader = HLSDownloader(encrypted_stream)
    segments, _ = await downloader.fetch_manifest(PLAYLIST_URL)

    await downloader.download_segments(segments)
    await downloader.download_segments(segments)

    assert encrypted_stream.count(KEY_URL) == 2


async def test_overlapping_download_is_rejected(encrypted_stream):
    downloader = HLSDownloader(encrypted_stream)
    segments, _ = await downloader.fetch_manifest(PLAYLIST_URL)
    encrypted_stream.delay = 0.05

    first = asyncio.create_task(downloader.download_segments(segments))
    await asyncio.sleep(0.01)
    assert downloader.is_downloading
    with pytest.raises(DownloadInProgress):
        await downloader.download_segments(segments)

    assert downloader.stitch_segments(await first) == b"AAAABBBB"


async def test_abort_stops_download(encrypted_stream):
    downloader = HLSDownloader(encrypted_stream)
    segments, _ = await downloader.fetch_manifest(PLAYLIST_URL)
    encrypted_stream.delay = 10

    task = asyncio.create_task(downloader.download_segments(segments))
    await asyncio.sleep(0.01)
    downloader.abort()

    with pytest.raises(Aborted):
        await asyncio.wait_for(task, timeout=5)
    assert not downloader.is_downloading


def test_abort_without_download_is_a_noop():
    HLSDownloader(FakeTransport()).abort()


async def test_segment_failure_surfaces_from_download():
    transport = FakeTransport(
        {
            PLAYLIST_URL: "a.ts\nb.ts\n",
            "https://cdn.example.com/vod/a.ts": b"A",
            "https://cdn.example.com/vod/b.ts": aiohttp.ServerDisconnectedError(),
        }
    )
    downloader = HLSDownloader(transport)
    segments, _ = await downloader.fetch_manifest(PLAYLIST_URL)

    with pytest.raises(SegmentFetchFailed, match="segment 1"):
        await downloader.download_segments(segments)
    assert not downloader.is_downloading
