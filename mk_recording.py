"""
Recording engine: fixed-rate screenshot capture plus a narration ledger.

Idle -> Recording -> Idle. Capture runs as an asyncio task on the same
loop as the orchestrator, so frames and segments need no locking; stop()
cancels the capture task before anything reads the lists.
"""

import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from mk_common import FinalizeError
from mk_compose import FfmpegEncoder, frame_filename
from mk_config import RecordingConfig
from mk_models import AudioSegment, Frame, RecordingSession

logger = logging.getLogger(__name__)


class RecordingEngine:
    def __init__(
        self,
        config: Optional[RecordingConfig] = None,
        encoder: Optional[FfmpegEncoder] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or RecordingConfig()
        self.encoder = encoder or FfmpegEncoder()
        self._clock = clock
        self.page: Any = None
        self.session: Optional[RecordingSession] = None
        self.is_recording = False
        self._capture_task: Optional[asyncio.Task] = None

    def elapsed_ms(self) -> int:
        if not self.session:
            return 0
        return int((self._clock() - self.session.started_at) * 1000)

    async def start(self, page: Any) -> None:
        if self.is_recording:
            logger.warning("Recording already in progress")
            return

        logger.info(
            f"Starting video recording: {self.config.fps}fps, "
            f"{self.config.width}x{self.config.height}, quality={self.config.quality}"
        )
        self.page = page
        self.session = RecordingSession(
            started_at=self._clock(),
            fps=self.config.fps,
            target_resolution=self.config.resolution,
            quality=self.config.quality,
        )
        await page.set_viewport_size({"width": self.config.width, "height": self.config.height})

        self.is_recording = True
        self._capture_task = asyncio.ensure_future(self._capture_loop())
        logger.info("Video recording started")

    async def _capture_loop(self) -> None:
        interval = 1.0 / self.config.fps
        while self.is_recording:
            tick = self._clock()
            await self.capture_frame()
            await asyncio.sleep(max(0.0, interval - (self._clock() - tick)))

    async def capture_frame(self) -> Optional[Frame]:
        if not self.is_recording or self.page is None:
            return None
        try:
            image = await self.page.screenshot(type="png", full_page=False)
        except Exception as e:
            logger.error(f"Failed to capture frame: {e}")
            return None

        frame = Frame(image=image, elapsed_ms=self.elapsed_ms(), index=len(self.session.frames))
        self.session.frames.append(frame)
        logger.debug(f"Frame captured: #{frame.index} at {frame.elapsed_ms}ms")
        return frame

    def append_audio_segment(self, clip: bytes, declared_duration_ms: int) -> Optional[AudioSegment]:
        if not self.is_recording:
            logger.warning("Cannot add audio segment: not recording")
            return None

        segment = AudioSegment(
            clip=clip,
            elapsed_ms_at_append=self.elapsed_ms(),
            declared_duration_ms=int(declared_duration_ms),
            index=len(self.session.audio_segments),
        )
        self.session.audio_segments.append(segment)
        logger.debug(
            f"Audio segment added: #{segment.index} at {segment.elapsed_ms_at_append}ms "
            f"({segment.declared_duration_ms}ms)"
        )
        return segment

    async def stop(self) -> None:
        """Cancel capture; frames and segments stay for finalize."""
        if not self.is_recording:
            return

        logger.info("Stopping video recording")
        self.is_recording = False
        task, self._capture_task = self._capture_task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        logger.info(
            f"Video recording stopped: {len(self.session.frames)} frames, "
            f"{len(self.session.audio_segments)} audio segments, {self.elapsed_ms()}ms"
        )

    def discard(self) -> None:
        """Drop captured data without encoding."""
        if self.session:
            self.session.clear()
        self.session = None

    def _write_frames(self, temp_dir: Path) -> None:
        logger.debug(f"Saving {len(self.session.frames)} frames to {temp_dir}")
        # Named by capture order; playback timing comes from fps alone
        for position, frame in enumerate(sorted(self.session.frames, key=lambda f: f.index)):
            (temp_dir / frame_filename(position)).write_bytes(frame.image)

    def _write_clips(self, temp_dir: Path):
        clips = []
        for segment in self.session.audio_segments:
            clip_path = temp_dir / f"temp_audio_{segment.index}.mp3"
            clip_path.write_bytes(segment.clip)
            clips.append((clip_path, segment.elapsed_ms_at_append))
        return clips

    def _cleanup(self, temp_dir: Path) -> None:
        try:
            shutil.rmtree(temp_dir)
            logger.debug("Temporary files cleaned up")
        except OSError as e:
            logger.warning(f"Failed to clean up some temporary files: {e}")

    async def finalize(self, output_path: Path, temp_dir: Optional[Path] = None) -> Path:
        """
        Encode everything captured so far into output_path.

        Raises:
            FinalizeError: nothing was captured, or encoding failed
        """
        if self.is_recording:
            await self.stop()
        if not self.session or not self.session.frames:
            raise FinalizeError("Video processing failed: no frames captured")

        output_path = Path(output_path)
        temp_dir = Path(temp_dir) if temp_dir else Path(self.config.work_dir or output_path.parent) / "temp_frames"
        logger.info(
            f"Finalizing video: {output_path} ({len(self.session.frames)} frames, "
            f"{len(self.session.audio_segments)} audio segments)"
        )

        try:
            temp_dir.mkdir(parents=True, exist_ok=True)
            self._write_frames(temp_dir)

            audio_path = None
            if self.session.audio_segments:
                clips = self._write_clips(temp_dir)
                audio_path = await asyncio.to_thread(
                    self.encoder.build_audio_track, clips, temp_dir / "temp_audio.wav"
                )

            await asyncio.to_thread(
                self.encoder.encode,
                temp_dir,
                output_path,
                self.session.fps,
                self.session.target_resolution,
                self.session.quality,
                audio_path,
            )
        except FinalizeError:
            raise
        except Exception as e:
            raise FinalizeError(f"Video processing failed: {e}") from e

        self._cleanup(temp_dir)
        self.discard()
        logger.info(f"Video finalization completed: {output_path}")
        return output_path

    def stats(self) -> Dict[str, Any]:
        session = self.session
        return {
            "is_recording": self.is_recording,
            "frame_count": len(session.frames) if session else 0,
            "audio_segment_count": len(session.audio_segments) if session else 0,
            "duration_ms": self.elapsed_ms(),
            "fps": self.config.fps,
            "quality": self.config.quality,
            "resolution": self.config.resolution,
        }
