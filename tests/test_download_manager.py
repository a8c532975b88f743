import asyncio

import pytest

from hls_cli.core.download_manager import DownloadManager
from hls_cli.core.downloader import HLSDownloader
from hls_cli.exceptions import ConversionError, DecryptionFailed, NoSegmentsFound
from hls_cli.models.config import DownloadConfig
from hls_cli.models.progress import LogType, Phase
from tests.fakes import FakeTransport

PLAYLIST_URL = "https://cdn.example.com/show/episode-1.m3u8"


class RecordingListener:
    def __init__(self):
        self.progress = []
        self.logs = []

    def on_progress(self, progress):
        self.progress.append(progress)

    def on_log(self, message):
        self.logs.append(message)

    @property
    def phases(self):
        phases = []
        for p in self.progress:
            if not phases or phases[-1] != p.phase:
                phases.append(p.phase)
        return phases


class FakeConverter:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.inputs = []

    async def convert_ts_to_mp4(self, ts_data, on_progress=None, duration_hint=None):
        self.inputs.append(ts_data)
        if self.fail:
            raise ConversionError("ffmpeg exited with status 1: invalid data")
        for percent in (5, 50, 95, 100):
            on_progress(percent)
        return b"MP4:" + ts_data


def make_stream(count=3):
    responses = {PLAYLIST_URL: "#EXT-X-TARGETDURATION:6\n"}
    for i in range(count):
        responses[PLAYLIST_URL] += f"#EXTINF:6,\nseg{i}.ts\n"
        responses[f"https://cdn.example.com/show/seg{i}.ts"] = f"[{i}]".encode()
    return FakeTransport(responses)


def make_manager(tmp_path, transport, converter=None, **config):
    listener = RecordingListener()
    manager = DownloadManager(
        DownloadConfig(output_dir=str(tmp_path), **config),
        HLSDownloader(transport),
        listener,
        converter or FakeConverter(),
    )
    return manager, listener


async def test_download_without_conversion(tmp_path):
    manager, listener = make_manager(tmp_path, make_stream(), convert=False)

    result = await manager.run(PLAYLIST_URL)

    assert result.ts_path == tmp_path / "episode-1.ts"
    assert result.ts_path.read_bytes() == b"[0][1][2]"
    assert result.mp4_path is None
    assert result.total_bytes == 9
    assert listener.phases == [
        Phase.FETCHING_MANIFEST,
        Phase.DOWNLOADING,
        Phase.STITCHING,
        Phase.DONE,
    ]
    counts = [
        p.downloaded_segments
        for p in listener.progress
        if p.phase == Phase.DOWNLOADING
    ]
    assert counts[-1] == 3
    assert listener.progress[-1].percent == 100
    assert any(
        m.type == LogType.SUCCESS and "Found 3 segments" in m.message
        for m in listener.logs
    )


async def test_conversion_replaces_ts_with_mp4(tmp_path):
    converter = FakeConverter()
    manager, listener = make_manager(tmp_path, make_stream(2), converter)

    result = await manager.run(PLAYLIST_URL, name="My Show")

    assert result.mp4_path == tmp_path / "My Show.mp4"
    assert result.mp4_path.read_bytes() == b"MP4:[0][1]"
    assert result.ts_path is None
    assert not (tmp_path / "My Show.ts").exists()
    assert Phase.CONVERTING in listener.phases
    assert listener.phases[-1] == Phase.DONE


async def test_keep_ts_keeps_both_files(tmp_path):
    manager, _ = make_manager(tmp_path, make_stream(1), keep_ts=True)

    result = await manager.run(PLAYLIST_URL)

    assert result.ts_path.exists()
    assert result.mp4_path.exists()


async def test_conversion_failure_keeps_ts_and_reports_error(tmp_path):
    manager, listener = make_manager(tmp_path, make_stream(), FakeConverter(fail=True))

    result = await manager.run(PLAYLIST_URL)

    assert result.conversion_failed
    assert result.ts_path.read_bytes() == b"[0][1][2]"
    assert result.mp4_path is None
    assert listener.phases[-1] == Phase.ERROR
    messages = [m.message for m in listener.logs]
    assert any("Conversion failed" in m for m in messages)
    assert any('ffmpeg -i "' in m for m in messages)


async def test_pipeline_error_sets_error_phase_and_reraises(tmp_path):
    transport = FakeTransport({PLAYLIST_URL: "#EXTM3U\n#EXT-X-ENDLIST\n"})
    manager, listener = make_manager(tmp_path, transport)

    with pytest.raises(NoSegmentsFound):
        await manager.run(PLAYLIST_URL)

    assert listener.phases == [Phase.FETCHING_MANIFEST, Phase.ERROR]
    assert listener.logs[-1].type == LogType.ERROR
    assert listener.logs[-1].message == "No segments found."


async def test_abort_returns_to_idle(tmp_path):
    transport = make_stream(12)
    manager, listener = make_manager(tmp_path, transport)

    async def abort_when_downloading():
        while not manager.downloader.is_downloading:
            await asyncio.sleep(0)
        transport.delay = 10
        manager.abort()

    transport.delay = 0.01
    aborter = asyncio.create_task(abort_when_downloading())
    result = await asyncio.wait_for(manager.run(PLAYLIST_URL), timeout=5)
    await aborter

    assert result.aborted
    assert result.ts_path is None
    assert listener.progress[-1].phase == Phase.IDLE
    assert any(
        m.type == LogType.WARNING and "aborted" in m.message for m in listener.logs
    )
    assert list(tmp_path.iterdir()) == []


async def test_encrypted_stream_logs_warning(tmp_path):
    transport = FakeTransport(
        {
            PLAYLIST_URL: '#EXT-X-KEY:METHOD=SAMPLE-AES,URI="k"\nseg0.ts\n',
            "https://cdn.example.com/show/seg0.ts": b"x" * 16,
            "https://cdn.example.com/show/k": bytes(16),
        }
    )
    manager, listener = make_manager(tmp_path, transport)

    with pytest.raises(DecryptionFailed):
        await manager.run(PLAYLIST_URL)

    warnings = [m.message for m in listener.logs if m.type == LogType.WARNING]
    assert any("SAMPLE-AES" in w and "not supported" in w for w in warnings)
