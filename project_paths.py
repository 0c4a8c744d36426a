from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class RunPaths:
    token: str
    output_dir: Path
    work_dir: Path

    @property
    def video(self) -> Path:
        return self.output_dir / f"demo_{self.token}.mp4"

    @property
    def transcript(self) -> Path:
        return self.output_dir / f"transcription_{self.token}.txt"

    @property
    def subtitles(self) -> Path:
        return self.output_dir / f"subtitles_{self.token}.srt"

    @property
    def log(self) -> Path:
        return self.output_dir / f"mkdemo_{self.token}.log"

    @property
    def timeline_json(self) -> Path:
        return self.output_dir / f"timeline_{self.token}.json"

    @property
    def frames_dir(self) -> Path:
        return self.work_dir / f"temp_frames_{self.token}"

    @property
    def audio_dir(self) -> Path:
        return self.work_dir / f"audio_{self.token}"


def make_run_token(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime("%Y%m%d_%H%M%S")


def run_paths(output_dir: Path, token: Optional[str] = None, work_dir: Optional[Path] = None) -> RunPaths:
    output_dir = Path(output_dir)
    return RunPaths(
        token=token or make_run_token(),
        output_dir=output_dir,
        work_dir=Path(work_dir) if work_dir else output_dir,
    )
