"""
Demo orchestration: navigate, log in, record, plan, and for every step
narrate -> synthesize -> execute -> append audio -> settle. Then stop,
write the text artifacts, and encode the video.

Every run is all-or-nothing; any fatal error unwinds to create_demo(),
which turns it into an error response after tearing the browser down.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from elevenlabs_tts import load_elevenlabs_config
from mk_auth import SessionNegotiator
from mk_browser import BrowserSession
from mk_captions import build_fixed_window_captions, generate_srt_file, write_timeline, write_transcript
from mk_common import (
    AuthError, ConfigError, ElementNotFoundError, MKError,
    error_response, success_response, validate_env_for_command,
)
from mk_config import DemoConfig, load_dotenv_once, validate_demo_config
from mk_executor import PlanExecutor
from mk_logging import setup_logging
from mk_models import Credentials, TranscriptSegment
from mk_narration import Narrator
from mk_planner import InteractionPlanner
from mk_reasoning import OpenAIReasoningService
from mk_recording import RecordingEngine
from mk_tts import SpeechSynthesizer
from project_paths import RunPaths, run_paths

logger = logging.getLogger(__name__)


@dataclass
class DemoResult:
    video_path: Path
    transcript_path: Path
    subtitles_path: Path
    timeline_path: Path
    log_path: Path
    steps_planned: int = 0
    steps_executed: int = 0
    steps_skipped: int = 0
    voice_id: Optional[str] = None
    segments: List[TranscriptSegment] = field(default_factory=list, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "video": str(self.video_path),
            "transcript": str(self.transcript_path),
            "subtitles": str(self.subtitles_path),
            "timeline": str(self.timeline_path),
            "log": str(self.log_path),
            "steps_planned": self.steps_planned,
            "steps_executed": self.steps_executed,
            "steps_skipped": self.steps_skipped,
            "voice_id": self.voice_id,
        }


class DemoOrchestrator:
    """
    Runs one demo. Collaborators may be injected; anything left as None
    is built from the config (and environment) when run() starts.
    """

    def __init__(
        self,
        config: DemoConfig,
        paths: Optional[RunPaths] = None,
        browser: Optional[BrowserSession] = None,
        reasoning=None,
        synthesizer: Optional[SpeechSynthesizer] = None,
        recorder: Optional[RecordingEngine] = None,
        negotiator_factory=SessionNegotiator,
        executor_factory=PlanExecutor,
    ):
        self.config = config
        self.paths = paths
        self.browser = browser
        self.reasoning = reasoning
        self.synthesizer = synthesizer
        self.recorder = recorder
        self.negotiator_factory = negotiator_factory
        self.executor_factory = executor_factory
        self._owns_reasoning = False

    def _build_collaborators(self) -> None:
        if self.reasoning is None or self.synthesizer is None:
            env_check = validate_env_for_command("create")
            if not env_check["success"]:
                raise ConfigError(env_check["error"])

        if self.paths is None:
            self.paths = run_paths(self.config.output_dir, work_dir=self.config.recording.work_dir)
        if self.browser is None:
            self.browser = BrowserSession(self.config.browser)
        if self.reasoning is None:
            self.reasoning = OpenAIReasoningService(model=self.config.planner.model)
            self._owns_reasoning = True
        if self.synthesizer is None:
            self.synthesizer = SpeechSynthesizer(
                load_elevenlabs_config(),
                voice_id=self.config.voice_id,
                gender=self.config.voice_gender,
                audio_dir=self.paths.audio_dir,
            )
        if self.recorder is None:
            self.recorder = RecordingEngine(self.config.recording)

    async def _execute_steps(self, steps, page) -> List[TranscriptSegment]:
        narrator = Narrator(self.reasoning, self.config.planner)
        executor = self.executor_factory(page)
        segments: List[TranscriptSegment] = []

        for i, step in enumerate(steps):
            logger.info(f"Executing interaction {i + 1}/{len(steps)}: {step.kind} - {step.description}")

            text = await narrator.narrate(step)
            segment = TranscriptSegment(index=i, text=text, step=step)
            segments.append(segment)

            clip = await self.synthesizer.synthesize(text)

            try:
                await executor.execute(step)
            except ElementNotFoundError as e:
                if not self.config.skip_missing_elements:
                    raise
                logger.warning(f"Skipping step {i + 1}: {e}")
                segment.skipped = True
                continue

            appended = self.recorder.append_audio_segment(clip.audio, clip.duration_ms)
            if appended is not None:
                segment.audio_offset_ms = appended.elapsed_ms_at_append
                segment.audio_duration_ms = appended.declared_duration_ms

            await asyncio.sleep(self.config.settle_delay_s)

        return segments

    def _write_text_artifacts(self, segments: List[TranscriptSegment]) -> None:
        write_transcript(segments, self.paths.transcript)
        captions = build_fixed_window_captions([s.text for s in segments], self.config.subtitle_window_s)
        srt = generate_srt_file(captions, self.paths.subtitles)
        if not srt["success"]:
            logger.warning(f"Subtitles not written: {srt['error']}")
        write_timeline(segments, self.paths.timeline_json, self.recorder.stats())

    async def _teardown(self) -> None:
        if self.recorder is not None:
            await self.recorder.stop()
            self.recorder.discard()
        if self.browser is not None:
            await self.browser.close()
        if self._owns_reasoning:
            try:
                await self.reasoning.close()
            except Exception as e:
                logger.warning(f"Error closing reasoning client: {e}")

    async def run(self) -> DemoResult:
        validate_demo_config(self.config)
        credentials = Credentials(self.config.identifier, self.config.secret)
        self._build_collaborators()

        logger.info(
            f"Starting mkdemo video creation: url={self.config.url} user={self.config.identifier} "
            f"max_interactions={self.config.max_interactions} headless={self.config.headless}"
        )
        self.paths.output_dir.mkdir(parents=True, exist_ok=True)

        try:
            logger.info("Initializing browser session")
            page = await self.browser.start()
            await self.browser.navigate(self.config.url)

            logger.info(f"Attempting authentication as {credentials.identifier}")
            negotiator = self.negotiator_factory(page)
            if not await negotiator.authenticate(credentials):
                raise AuthError("Authentication failed")

            logger.info("Authentication successful, starting AI-driven interactions")
            await self.recorder.start(page)

            snapshot = await self.browser.capture_snapshot(self.config.planner.max_elements)
            planner = InteractionPlanner(self.reasoning, self.config.planner)
            steps = await planner.plan(snapshot)

            segments = await self._execute_steps(steps, page)

            logger.info("All interactions completed, finalizing video")
            await self.recorder.stop()
            self._write_text_artifacts(segments)
            await self.recorder.finalize(self.paths.video, self.paths.frames_dir)
        finally:
            await self._teardown()

        result = DemoResult(
            video_path=self.paths.video,
            transcript_path=self.paths.transcript,
            subtitles_path=self.paths.subtitles,
            timeline_path=self.paths.timeline_json,
            log_path=self.paths.log,
            steps_planned=len(steps),
            steps_executed=sum(1 for s in segments if not s.skipped),
            steps_skipped=sum(1 for s in segments if s.skipped),
            voice_id=self.synthesizer.voice_id,
            segments=segments,
        )
        logger.info(f"Demo creation completed successfully: {result.video_path}")
        return result


def create_demo(config: DemoConfig, **collaborators) -> dict:
    """
    Run a demo synchronously and return a response dict.

    Never raises: failures come back as error_response() dicts with the
    error code and a suggestion.
    """
    load_dotenv_once()
    try:
        validate_demo_config(config)
    except MKError as e:
        return error_response(e, "Invalid options")

    paths = collaborators.pop("paths", None) or run_paths(
        config.output_dir, work_dir=config.recording.work_dir
    )
    setup_logging(verbose=config.verbose, log_path=paths.log)

    orchestrator = DemoOrchestrator(config, paths=paths, **collaborators)
    try:
        result = asyncio.run(orchestrator.run())
    except Exception as e:
        logger.exception(f"Demo creation failed: {e}")
        response = error_response(e, "Demo creation failed")
        response["log"] = str(paths.log)
        return response

    return success_response(**result.to_dict())
