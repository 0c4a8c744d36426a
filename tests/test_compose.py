"""
ffmpeg encoder tests (subprocess replaced by a recorder)
"""
import subprocess
from types import SimpleNamespace

import pytest

from mk_common import FinalizeError
from mk_compose import FRAME_PATTERN, FfmpegEncoder, frame_filename


class FakeRun:
    def __init__(self, returncode=0, stderr="", raises=None):
        self.calls = []
        self.returncode = returncode
        self.stderr = stderr
        self.raises = raises

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        if self.raises:
            raise self.raises
        return SimpleNamespace(returncode=self.returncode, stderr=self.stderr, stdout="")


def test_frame_filename_is_zero_padded():
    assert frame_filename(0) == "frame_000000.png"
    assert frame_filename(42) == "frame_000042.png"


class TestAudioTrack:

    def test_each_clip_delayed_to_its_offset(self, tmp_path):
        run = FakeRun()
        encoder = FfmpegEncoder(ffmpeg="ffmpeg", run=run)
        clips = [(tmp_path / "a.mp3", 0), (tmp_path / "b.mp3", 4250)]

        out = encoder.build_audio_track(clips, tmp_path / "track.wav")

        cmd, kwargs = run.calls[0]
        graph = cmd[cmd.index("-filter_complex") + 1]
        assert "[0:a]adelay=0|0[a0]" in graph
        assert "[1:a]adelay=4250|4250[a1]" in graph
        assert "amix=inputs=2:duration=longest:normalize=0" in graph
        assert cmd[-1] == str(tmp_path / "track.wav")
        assert "pcm_s16le" in cmd
        assert kwargs["timeout"] == 600
        assert out == tmp_path / "track.wav"

    def test_no_clips_is_an_error(self, tmp_path):
        with pytest.raises(FinalizeError):
            FfmpegEncoder(ffmpeg="ffmpeg", run=FakeRun()).build_audio_track([], tmp_path / "t.wav")


class TestEncode:

    def test_video_only(self, tmp_path):
        run = FakeRun()
        encoder = FfmpegEncoder(ffmpeg="/opt/ffmpeg", run=run)

        encoder.encode(tmp_path / "frames", tmp_path / "out" / "demo.mp4", 24, (1280, 720), "low")

        cmd, _ = run.calls[0]
        assert cmd[0] == "/opt/ffmpeg"
        assert cmd[cmd.index("-framerate") + 1] == "24"
        assert cmd[cmd.index("-start_number") + 1] == "0"
        assert cmd[cmd.index("-i") + 1] == str(tmp_path / "frames" / FRAME_PATTERN)
        assert "scale=1280:720" in cmd
        assert cmd[cmd.index("-b:v") + 1] == "1000k"
        assert "-c:a" not in cmd
        assert cmd[-1] == str(tmp_path / "out" / "demo.mp4")
        assert (tmp_path / "out").is_dir()

    def test_with_audio_maps_both_streams(self, tmp_path):
        run = FakeRun()
        encoder = FfmpegEncoder(ffmpeg="ffmpeg", run=run)

        encoder.encode(tmp_path, tmp_path / "demo.mp4", 30, (1920, 1080), "high", tmp_path / "track.wav")

        cmd, _ = run.calls[0]
        assert cmd.count("-i") == 2
        assert cmd[cmd.index("-b:a") + 1] == "192k"
        assert ["-map", "0:v", "-map", "1:a"] == cmd[cmd.index("-map"):cmd.index("-map") + 4]
        assert "+faststart" in cmd

    def test_unknown_quality_uses_high(self, tmp_path):
        run = FakeRun()
        FfmpegEncoder(ffmpeg="ffmpeg", run=run).encode(tmp_path, tmp_path / "d.mp4", 30, (640, 480), "ultra")
        cmd, _ = run.calls[0]
        assert cmd[cmd.index("-b:v") + 1] == "5000k"

    def test_nonzero_exit_raises_with_stderr(self, tmp_path):
        run = FakeRun(returncode=1, stderr="Invalid data found when processing input")
        with pytest.raises(FinalizeError) as exc_info:
            FfmpegEncoder(ffmpeg="ffmpeg", run=run).encode(tmp_path, tmp_path / "d.mp4", 30, (640, 480))
        assert "Invalid data found" in str(exc_info.value)

    def test_timeout_raises(self, tmp_path):
        run = FakeRun(raises=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=600))
        with pytest.raises(FinalizeError):
            FfmpegEncoder(ffmpeg="ffmpeg", run=run).encode(tmp_path, tmp_path / "d.mp4", 30, (640, 480))
