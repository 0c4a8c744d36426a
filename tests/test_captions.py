"""
Transcript, subtitle and timeline tests
"""
import json

from mk_captions import (
    CaptionEntry,
    build_fixed_window_captions,
    generate_srt_file,
    write_timeline,
    write_transcript,
)
from mk_models import InteractionStep, TranscriptSegment


def segments():
    return [
        TranscriptSegment(index=0, text="We open the dashboard.",
                          step=InteractionStep("click", "a.nav", "Open dashboard"),
                          audio_offset_ms=1200, audio_duration_ms=2500),
        TranscriptSegment(index=1, text="Then we check the reports.",
                          step=InteractionStep("hover", "#reports", "Hover reports"), skipped=True),
    ]


class TestSrtFormatting:

    def test_time_format(self):
        assert CaptionEntry.to_srt_time(0) == "00:00:00,000"
        assert CaptionEntry.to_srt_time(5) == "00:00:05,000"
        assert CaptionEntry.to_srt_time(3725.5) == "01:02:05,500"

    def test_rounding_does_not_produce_1000_ms(self):
        assert CaptionEntry.to_srt_time(1.9996) == "00:00:02,000"

    def test_long_text_wraps(self):
        entry = CaptionEntry(0, 5, "This narration is long enough that it has to wrap across two lines")
        block = entry.to_srt_entry(1)
        lines = block.splitlines()
        assert lines[0] == "1"
        assert lines[1] == "00:00:00,000 --> 00:00:05,000"
        assert all(len(line) <= 42 for line in lines[2:])
        assert len(lines) > 3


class TestArtifacts:

    def test_fixed_windows(self):
        captions = build_fixed_window_captions(["a", "b", "c"], window_s=5.0)
        assert [(c.start_s, c.end_s) for c in captions] == [(0, 5), (5, 10), (10, 15)]

    def test_transcript_blank_line_between_segments(self, tmp_path):
        path = write_transcript(segments(), tmp_path / "t.txt")
        assert path.read_text(encoding="utf-8") == "We open the dashboard.\n\nThen we check the reports."

    def test_srt_file(self, tmp_path):
        captions = build_fixed_window_captions([s.text for s in segments()])
        result = generate_srt_file(captions, tmp_path / "sub" / "s.srt")

        assert result["success"]
        assert result["captions_count"] == 2
        content = (tmp_path / "sub" / "s.srt").read_text(encoding="utf-8")
        assert "2\n00:00:05,000 --> 00:00:10,000\nThen we check the reports.\n" in content

    def test_srt_failure_is_error_response(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        result = generate_srt_file([CaptionEntry(0, 5, "hi")], blocker / "s.srt")
        assert result["success"] is False
        assert "Failed to generate SRT file" in result["error"]

    def test_timeline(self, tmp_path):
        path = write_timeline(segments(), tmp_path / "timeline.json", {"frame_count": 90})
        data = json.loads(path.read_text(encoding="utf-8"))

        assert data["recording"] == {"frame_count": 90}
        assert data["steps"][0]["audio_offset_ms"] == 1200
        assert data["steps"][0]["type"] == "click"
        assert data["steps"][1]["skipped"] is True
        assert data["steps"][1]["audio_offset_ms"] is None
