import stat
from pathlib import Path

import pytest

from render_worker import browser_manager, jobs
from render_worker.config import Settings
from render_worker.storage import VideoUploader

CDN_URL = "https://cdn.example.com"


def write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def ffmpeg_ok(tmp_path):
    """Stand-in encoder: records its argv and writes a dummy MP4 to the last argument."""
    args_file = tmp_path / "ffmpeg.args"
    script = write_script(
        tmp_path / "ffmpeg-ok",
        f'echo "$@" > "{args_file}"\n'
        'for last; do :; done\n'
        'printf "mp4" > "$last"\n',
    )
    return script, args_file


@pytest.fixture
def ffmpeg_broken(tmp_path):
    return write_script(
        tmp_path / "ffmpeg-broken",
        'echo "Unknown encoder libx264" >&2\n'
        "exit 1\n",
    )


@pytest.fixture
def work_root(tmp_path):
    return tmp_path / "work"


@pytest.fixture
def settings(work_root, ffmpeg_ok):
    return Settings(
        _env_file=None,
        work_root=work_root,
        r2_bucket="renders",
        r2_cdn_url=CDN_URL,
        mapbox_api_key=None,
        ffmpeg_bin=str(ffmpeg_ok[0]),
    )


class FakeMinio:
    def __init__(self, error: Exception | None = None):
        self.puts = []
        self.error = error

    def put_object(self, **kwargs):
        if self.error is not None:
            raise self.error
        kwargs["body"] = kwargs["data"].read()
        self.puts.append(kwargs)


@pytest.fixture
def minio_client():
    return FakeMinio()


@pytest.fixture
def uploader(minio_client):
    return VideoUploader(minio_client, "renders", CDN_URL)


@pytest.fixture
def webhook_calls(monkeypatch):
    calls = []

    async def fake_notify(url, result, timeout=10):
        calls.append((url, result.to_payload()))

    monkeypatch.setattr(jobs, "notify_webhook", fake_notify)
    return calls


@pytest.fixture
def fake_capture(monkeypatch):
    """Replace the browser with a function that drops ``frames`` JPEGs on disk."""
    state = {"frames": 75, "calls": [], "error": None}

    async def capture(html_path, frames_dir, dimensions, duration, uses_mapbox, settings):
        state["calls"].append({
            "workspace": html_path.parent,
            "html": html_path.read_text(encoding="utf-8"),
            "duration": duration,
            "uses_mapbox": uses_mapbox,
        })
        if state["error"] is not None:
            raise state["error"]
        for i in range(state["frames"]):
            (frames_dir / f"frame_{i:06d}.jpg").write_bytes(b"\xff\xd8\xff\xd9")
        return state["frames"]

    monkeypatch.setattr(browser_manager, "capture_frames", capture)
    return state
