"""
Transcript, subtitle and timeline artifacts for a demo run.

Subtitles use synthetic fixed-width windows: segment i covers
[i*W, (i+1)*W) seconds regardless of when its audio actually played.
The timeline JSON carries the real offsets for anyone who needs them.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from mk_common import error_response, success_response
from mk_models import TranscriptSegment


@dataclass
class CaptionEntry:
    """Single caption entry with timing and text."""
    start_s: float
    end_s: float
    text: str

    @staticmethod
    def to_srt_time(seconds: float) -> str:
        """Convert seconds to SRT time format (HH:MM:SS,mmm)."""
        total_ms = int(round(seconds * 1000))
        hours, rem = divmod(total_ms, 3600_000)
        minutes, rem = divmod(rem, 60_000)
        secs, millis = divmod(rem, 1000)
        return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"

    def to_srt_entry(self, index: int) -> str:
        """SRT block for this caption; index is 1-based."""
        start_time = self.to_srt_time(self.start_s)
        end_time = self.to_srt_time(self.end_s)
        wrapped_text = self._wrap_text(self.text, max_chars=42)
        return f"{index}\n{start_time} --> {end_time}\n{wrapped_text}\n"

    @staticmethod
    def _wrap_text(text: str, max_chars: int = 42) -> str:
        if len(text) <= max_chars:
            return text

        lines = []
        current_line: List[str] = []
        current_length = 0
        for word in text.split():
            word_length = len(word) + (1 if current_line else 0)  # +1 for space
            if current_length + word_length <= max_chars:
                current_line.append(word)
                current_length += word_length
            else:
                if current_line:
                    lines.append(' '.join(current_line))
                current_line = [word]
                current_length = len(word)

        if current_line:
            lines.append(' '.join(current_line))
        return '\n'.join(lines)


def build_fixed_window_captions(texts: Sequence[str], window_s: float = 5.0) -> List[CaptionEntry]:
    return [
        CaptionEntry(start_s=i * window_s, end_s=(i + 1) * window_s, text=text)
        for i, text in enumerate(texts)
    ]


def write_transcript(segments: Sequence[TranscriptSegment], output_path: Union[str, Path]) -> Path:
    """Narration in execution order, one blank line between segments."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text("\n\n".join(s.text for s in segments), encoding="utf-8")
    return output


def generate_srt_file(captions: List[CaptionEntry], output_path: Union[str, Path]) -> dict:
    """Write captions as SRT and report the result as a response dict."""
    try:
        output = Path(output_path)
        output.parent.mkdir(parents=True, exist_ok=True)

        srt_text = '\n'.join(caption.to_srt_entry(i) for i, caption in enumerate(captions, start=1))
        output.write_text(srt_text, encoding='utf-8')

        return success_response(
            srt_file=str(output),
            format="srt",
            captions_count=len(captions),
            size_bytes=output.stat().st_size
        )

    except Exception as e:
        return error_response(e, "Failed to generate SRT file")


def write_timeline(
    segments: Sequence[TranscriptSegment],
    output_path: Union[str, Path],
    stats: Optional[Dict[str, Any]] = None,
) -> Path:
    """Per-step diagnostics: what ran, what was said, where the audio landed."""
    steps = []
    for s in segments:
        steps.append({
            "index": s.index,
            "type": s.step.kind if s.step else None,
            "selector": s.step.selector if s.step else None,
            "description": s.step.description if s.step else None,
            "narration": s.text,
            "audio_offset_ms": s.audio_offset_ms,
            "audio_duration_ms": s.audio_duration_ms,
            "skipped": s.skipped,
        })

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps({"steps": steps, "recording": stats or {}}, indent=2, default=str), encoding="utf-8")
    return output
