"""
Run configuration for mkdemo.

Every recognized option is a dataclass field with its default.
Environment values (optionally from a .env file) fill the defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse
import os
import re

from dotenv import load_dotenv

from mk_common import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MAX_INTERACTIONS_RANGE = (1, 20)
FPS_RANGE = (1, 60)
QUALITY_LEVELS = ("high", "medium", "low")
VOICE_GENDERS = ("male", "female")

_dotenv_loaded = False


def load_dotenv_once() -> None:
    """Load .env into os.environ the first time it is called."""
    global _dotenv_loaded
    if not _dotenv_loaded:
        load_dotenv()
        _dotenv_loaded = True


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _env_int(name: str, default: int) -> int:
    value = _env(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {value!r}")


@dataclass
class BrowserConfig:
    headless: bool = True
    width: int = 1920
    height: int = 1080
    timeout_ms: int = 30000
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    launch_args: List[str] = field(default_factory=lambda: [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--no-first-run",
        "--no-zygote",
        "--disable-gpu",
    ])


@dataclass
class RecordingConfig:
    fps: int = 30
    width: int = 1920
    height: int = 1080
    quality: str = "high"
    # Intermediate frames/audio go here; defaults to the run's output directory
    work_dir: Optional[Path] = None

    @classmethod
    def from_env(cls, **overrides) -> "RecordingConfig":
        values = {
            "fps": _env_int("VIDEO_FPS", 30),
            "quality": _env("VIDEO_QUALITY", "high"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @property
    def resolution(self):
        return (self.width, self.height)


@dataclass
class PlannerConfig:
    model: str = "gpt-4o"
    max_interactions: int = 10
    max_elements: int = 30
    plan_temperature: float = 0.3
    plan_max_tokens: int = 2000
    narration_temperature: float = 0.7
    narration_max_tokens: int = 150

    @classmethod
    def from_env(cls, **overrides) -> "PlannerConfig":
        values = {"model": _env("OPENAI_MODEL", "gpt-4o")}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class DemoConfig:
    """Per-run inputs. Validated before any network activity."""
    identifier: str
    secret: str = field(repr=False)
    url: str
    output_dir: Path = Path("./output")
    max_interactions: int = 10
    headless: bool = True
    verbose: bool = False
    voice_id: Optional[str] = None
    voice_gender: Optional[str] = None
    settle_delay_s: float = 2.0
    subtitle_window_s: float = 5.0
    skip_missing_elements: bool = False
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    recording: RecordingConfig = field(default_factory=RecordingConfig)
    planner: PlannerConfig = field(default_factory=PlannerConfig)

    def __post_init__(self):
        self.output_dir = Path(self.output_dir)
        self.browser.headless = self.headless
        self.planner.max_interactions = self.max_interactions
        if self.recording.work_dir is None:
            self.recording.work_dir = self.output_dir


def is_valid_email(value: str) -> bool:
    return bool(value) and bool(EMAIL_RE.match(value))


def is_valid_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_demo_config(config: DemoConfig) -> DemoConfig:
    """Raise ValidationError naming the first offending field."""
    for name in ("identifier", "secret", "url"):
        if not getattr(config, name):
            raise ValidationError(f"Missing required option: {name}")

    if not is_valid_email(config.identifier):
        raise ValidationError("Invalid email format for identifier")

    if not is_valid_url(config.url):
        raise ValidationError("Invalid URL format: url must be http(s)://host/...")

    lo, hi = MAX_INTERACTIONS_RANGE
    if not isinstance(config.max_interactions, int) or not lo <= config.max_interactions <= hi:
        raise ValidationError(f"max_interactions must be a number between {lo} and {hi}")

    lo, hi = FPS_RANGE
    if not lo <= config.recording.fps <= hi:
        raise ValidationError(f"fps must be between {lo} and {hi}")

    if config.recording.quality not in QUALITY_LEVELS:
        raise ValidationError(f"quality must be one of: {', '.join(QUALITY_LEVELS)}")

    if config.voice_gender and config.voice_gender not in VOICE_GENDERS:
        raise ValidationError('voice_gender must be "male", "female", or unset')

    if config.settle_delay_s < 0:
        raise ValidationError("settle_delay_s must not be negative")

    if config.subtitle_window_s <= 0:
        raise ValidationError("subtitle_window_s must be positive")

    return config
