"""
ffmpeg encoding for recorded demos.

Two invocations per run at most: one mixing the narration clips at their
offsets into a WAV track, one turning the numbered frames (plus that
track) into an MP4.
"""

import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from mk_common import FinalizeError, require_ffmpeg

logger = logging.getLogger(__name__)

QUALITY_SETTINGS = {
    "high": {"video_bitrate": "5000k", "audio_bitrate": "192k"},
    "medium": {"video_bitrate": "2500k", "audio_bitrate": "128k"},
    "low": {"video_bitrate": "1000k", "audio_bitrate": "96k"},
}

FRAME_PATTERN = "frame_%06d.png"


def frame_filename(index: int) -> str:
    return FRAME_PATTERN % index


class FfmpegEncoder:
    def __init__(self, ffmpeg: Optional[str] = None, run: Callable = subprocess.run, timeout_s: int = 600):
        self._ffmpeg = ffmpeg
        self._run = run
        self.timeout_s = timeout_s

    @property
    def ffmpeg(self) -> str:
        if not self._ffmpeg:
            self._ffmpeg = require_ffmpeg()
        return self._ffmpeg

    def _execute(self, cmd: List[str], what: str) -> None:
        logger.debug(f"Running ffmpeg ({what}): {' '.join(cmd)}")
        try:
            result = self._run(cmd, capture_output=True, text=True, timeout=self.timeout_s)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise FinalizeError(f"FFmpeg {what} failed: {e}") from e
        if result.returncode != 0:
            raise FinalizeError(f"FFmpeg {what} failed: {(result.stderr or '')[-500:]}")

    def build_audio_track(self, clips: Sequence[Tuple[Path, int]], output_path: Path) -> Path:
        """
        Mix clips into one WAV, each delayed to its offset.

        Args:
            clips: (clip path, offset in ms from recording start), in order
            output_path: WAV file to write
        """
        if not clips:
            raise FinalizeError("No audio clips to build a track from")

        inputs: List[str] = []
        filter_parts = []
        mix_inputs = []
        for i, (clip, offset_ms) in enumerate(clips):
            inputs.extend(["-i", str(clip)])
            delay = max(0, int(offset_ms))
            filter_parts.append(f"[{i}:a]adelay={delay}|{delay}[a{i}]")
            mix_inputs.append(f"[a{i}]")

        # Mix without normalization so each narration keeps its level
        filter_parts.append(f"{''.join(mix_inputs)}amix=inputs={len(mix_inputs)}:duration=longest:normalize=0[aout]")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        cmd = [
            self.ffmpeg, "-y",
            *inputs,
            "-filter_complex", ";".join(filter_parts),
            "-map", "[aout]",
            "-c:a", "pcm_s16le",
            str(output_path),
        ]
        logger.info(f"Building audio track from {len(clips)} segment(s)")
        self._execute(cmd, "audio track")
        return output_path

    def encode(
        self,
        frames_dir: Path,
        output_path: Path,
        fps: int,
        resolution: Tuple[int, int],
        quality: str = "high",
        audio_path: Optional[Path] = None,
    ) -> Path:
        """Encode frames_dir/frame_%06d.png (and optional audio) into an MP4."""
        settings = QUALITY_SETTINGS.get(quality, QUALITY_SETTINGS["high"])
        width, height = resolution

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        cmd = [
            self.ffmpeg, "-y",
            "-framerate", str(fps),
            "-start_number", "0",
            "-i", str(Path(frames_dir) / FRAME_PATTERN),
        ]
        if audio_path is not None:
            cmd += ["-i", str(audio_path)]

        cmd += [
            "-vf", f"scale={width}:{height}",
            "-c:v", "libx264",
            "-preset", "medium",
            "-crf", "23",
            "-pix_fmt", "yuv420p",
            "-b:v", settings["video_bitrate"],
            "-r", str(fps),
        ]
        if audio_path is not None:
            cmd += ["-c:a", "aac", "-b:a", settings["audio_bitrate"], "-map", "0:v", "-map", "1:a"]

        cmd += ["-movflags", "+faststart", str(output_path)]

        logger.info(f"Encoding video: {output_path} ({fps}fps, {width}x{height}, {quality})")
        self._execute(cmd, "encode")
        return output_path
