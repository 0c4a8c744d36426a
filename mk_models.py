"""
Data model for mkdemo runs.

Snapshots flow from the browser into the planner, steps flow from the
planner into the executor, and frames/segments accumulate in the
recording session until finalize.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


SUPPORTED_INTERACTIONS = ("click", "type", "hover", "scroll", "wait")


@dataclass(frozen=True)
class InteractiveElement:
    """One visible, interactive element as seen at snapshot time."""
    tag: str
    selector: str
    visible_text: str = ""
    input_type: Optional[str] = None
    center: Tuple[float, float] = (0.0, 0.0)
    size: Tuple[float, float] = (0.0, 0.0)
    is_visible: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractiveElement":
        position = data.get("position") or {}
        size = data.get("size") or {}
        return cls(
            tag=(data.get("tag") or "").lower(),
            selector=data.get("selector") or "",
            visible_text=(data.get("text") or "").strip(),
            input_type=data.get("type") or None,
            center=(float(position.get("x", 0.0)), float(position.get("y", 0.0))),
            size=(float(size.get("width", 0.0)), float(size.get("height", 0.0))),
            is_visible=bool(data.get("visible", True)),
        )

    def describe(self) -> str:
        """Single prompt line: tag[type]: "text" (selector: ...)."""
        type_part = f"[{self.input_type}]" if self.input_type else ""
        return f'- {self.tag}{type_part}: "{self.visible_text}" (selector: {self.selector})'


@dataclass(frozen=True)
class PageSnapshot:
    """Read-only view of a page's interactive elements at one instant."""
    url: str
    title: str
    captured_at: str
    elements: Tuple[InteractiveElement, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any], max_elements: int = 30) -> "PageSnapshot":
        raw_elements = data.get("interactiveElements") or data.get("elements") or []
        elements = tuple(InteractiveElement.from_dict(e) for e in raw_elements[:max_elements])
        return cls(
            url=data.get("url", ""),
            title=data.get("title", ""),
            captured_at=data.get("timestamp", ""),
            elements=elements,
        )


@dataclass
class InteractionStep:
    """One planned browser action, consumed exactly once by the executor."""
    kind: str
    selector: str
    description: str
    text: Optional[str] = None
    reasoning: Optional[str] = None
    duration_hint_ms: Optional[int] = None

    @staticmethod
    def kind_of(data: Dict[str, Any]) -> str:
        # Planner output uses "type"; "kind" is accepted too
        return str(data.get("type") or data.get("kind") or "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InteractionStep":
        duration = data.get("duration") if data.get("duration") is not None else data.get("duration_ms")
        try:
            duration_ms = int(duration) if duration is not None else None
        except (TypeError, ValueError):
            duration_ms = None
        return cls(
            kind=cls.kind_of(data),
            selector=str(data.get("selector") or ""),
            description=str(data.get("description") or ""),
            text=data.get("text") or None,
            reasoning=data.get("reasoning") or None,
            duration_hint_ms=duration_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "selector": self.selector,
            "text": self.text,
            "description": self.description,
            "reasoning": self.reasoning,
            "duration": self.duration_hint_ms,
        }


@dataclass(frozen=True)
class Credentials:
    identifier: str
    secret: str = field(repr=False)

    @property
    def complete(self) -> bool:
        return bool(self.identifier) and bool(self.secret)


@dataclass(frozen=True)
class AuthResult:
    """Terminal state of a login negotiation."""
    succeeded: bool
    landing_url: Optional[str] = None
    failure_reason: Optional[str] = None

    @classmethod
    def success(cls, landing_url: str) -> "AuthResult":
        return cls(succeeded=True, landing_url=landing_url)

    @classmethod
    def failure(cls, reason: str) -> "AuthResult":
        return cls(succeeded=False, failure_reason=reason)


@dataclass
class Frame:
    image: bytes = field(repr=False)
    elapsed_ms: int
    index: int


@dataclass
class AudioSegment:
    clip: bytes = field(repr=False)
    elapsed_ms_at_append: int
    declared_duration_ms: int
    index: int


@dataclass
class RecordingSession:
    """Mutable state owned by the recording engine for one run."""
    started_at: float
    fps: int
    target_resolution: Tuple[int, int]
    quality: str
    frames: List[Frame] = field(default_factory=list)
    audio_segments: List[AudioSegment] = field(default_factory=list)

    def clear(self) -> None:
        self.frames.clear()
        self.audio_segments.clear()


@dataclass
class TranscriptSegment:
    """Narration for one executed step, in execution order."""
    index: int
    text: str
    step: Optional[InteractionStep] = None
    audio_offset_ms: Optional[int] = None
    audio_duration_ms: Optional[int] = None
    skipped: bool = False


@dataclass
class PageAnalysis:
    page_type: str
    is_authenticated: bool
    key_elements: List[InteractiveElement]
    suggested_actions: List[str]
    element_count: int
