"""
Speech synthesis for narration segments.

ElevenLabs voices, text clean-up before synthesis, and the local
duration estimate the recording timeline relies on.
"""

from __future__ import annotations

import asyncio
import logging
import random
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from elevenlabs_tts import ElevenLabsTtsConfig, request_speech
from mk_common import SynthesisError, ValidationError

logger = logging.getLogger(__name__)

MALE_VOICES: Dict[str, str] = {
    "antoni": "ErXwobaYiN019PkySvjV",    # professional, clear
    "adam": "pNInz6obpgDQGcFmaJgB",      # authoritative, deep
    "sam": "yoZ06aMxZJJ28mfd3POQ",       # friendly, conversational
    "jake": "onwK4e9ZLuTAKqWW03F9",      # upbeat
    "drew": "29vD33N1CtxCmqQRPOHJ",      # warm, confident
}

FEMALE_VOICES: Dict[str, str] = {
    "rachel": "21m00Tcm4TlvDq8ikWAM",    # clear, trustworthy
    "bella": "EXAVITQu4vr4xnSDxMaL",     # warm, engaging
    "elli": "MF3mGyEYCl7XYWbV9V6O",      # bright, energetic
    "grace": "oWAxZDx7w5VEj9dCyTzz",     # calm, sophisticated
    "charlotte": "XB0fDUnXU5powFXDhCwa", # smooth, authoritative
}

VOICES: Dict[str, str] = {**MALE_VOICES, **FEMALE_VOICES}

WORDS_PER_MINUTE = 155
PACING_BUFFER = 0.10
MAX_TEXT_LENGTH = 4500

_INTRO_RE = re.compile(r"(?:^|(?<=[.!?]\s))(Welcome|Hello|Hi there|Let's|Now)[!.,]?\s*", re.IGNORECASE)
_SENTENCE_BREAK_RE = re.compile(r"([.!?])\s+([A-Z])")
_CONCLUSION_RE = re.compile(r"(?<!\.\.\. )\b(Overall|In conclusion|To sum up|Finally|Next)\b", re.IGNORECASE)
_URL_RE = re.compile(r"(https?://\S+)")
_UNSUPPORTED_RE = re.compile(r"[^\w\s.,!?;:()\-'\"]")
_NON_ASCII_RE = re.compile(r"[^\x00-\x7F]")


def list_voices(gender: Optional[str] = None) -> List[Dict[str, str]]:
    if gender and gender not in ("male", "female"):
        raise ValidationError('Gender must be "male", "female", or unset')
    voices = []
    for name, voice_id in VOICES.items():
        voice_gender = "male" if name in MALE_VOICES else "female"
        if gender and voice_gender != gender:
            continue
        voices.append({"name": name.capitalize(), "voice_id": voice_id, "gender": voice_gender})
    return voices


def pick_voice(gender: Optional[str] = None, rng: Optional[random.Random] = None) -> str:
    if gender == "male":
        pool = MALE_VOICES
    elif gender == "female":
        pool = FEMALE_VOICES
    elif gender is None:
        pool = VOICES
    else:
        raise ValidationError('Gender must be "male", "female", or unset')

    name = (rng or random).choice(sorted(pool))
    logger.info(f"Selected voice: {name} ({pool[name]})")
    return pool[name]


def enhance_text_for_speech(text: Optional[str]) -> str:
    """Insert natural pauses the voice model picks up on."""
    if not text:
        return ""
    enhanced = _INTRO_RE.sub(lambda m: f"{m.group(1)}! ", text)
    enhanced = _SENTENCE_BREAK_RE.sub(r"\1 ... \2", enhanced)
    enhanced = _CONCLUSION_RE.sub(r"... \1", enhanced)
    enhanced = _URL_RE.sub(r"... \1 ...", enhanced)
    return enhanced


def preprocess_text(text: Optional[str]) -> str:
    """Normalize whitespace, strip unsupported characters, cap the length."""
    if not text:
        return ""
    clean = re.sub(r"\s+", " ", text).strip()
    clean = _UNSUPPORTED_RE.sub("", clean)
    clean = _NON_ASCII_RE.sub("", clean)
    clean = re.sub(r"\s+", " ", clean).strip()

    if len(clean) > MAX_TEXT_LENGTH:
        truncated = clean[:MAX_TEXT_LENGTH]
        last_sentence = truncated.rfind(".")
        if last_sentence > MAX_TEXT_LENGTH * 0.8:
            clean = truncated[: last_sentence + 1]
        else:
            clean = truncated + "..."
    return clean


def estimate_audio_duration(text: Optional[str]) -> int:
    """Spoken duration in milliseconds from word count."""
    words = len((text or "").split())
    if not words:
        return 0
    return round(words / WORDS_PER_MINUTE * 60000 * (1 + PACING_BUFFER))


@dataclass
class SpeechClip:
    audio: bytes = field(repr=False)
    duration_ms: int
    text: str
    voice_id: str
    path: Optional[Path] = None


class SpeechSynthesizer:
    """
    Text-to-speech with one voice for the whole run.

    The voice is chosen once at construction: explicit voice_id, then the
    configured ELEVENLABS_VOICE_ID, then a random pick within `gender`.
    """

    def __init__(
        self,
        config: ElevenLabsTtsConfig,
        voice_id: Optional[str] = None,
        gender: Optional[str] = None,
        audio_dir: Optional[Path] = None,
        transport: Callable[..., bytes] = request_speech,
    ):
        self.config = config
        self.voice_id = voice_id or config.voice_id or pick_voice(gender)
        self.audio_dir = Path(audio_dir) if audio_dir else None
        self.transport = transport
        self._count = 0

    async def synthesize(self, text: str) -> SpeechClip:
        if not text or not text.strip():
            raise SynthesisError("Text is required and must be a non-empty string")

        processed = preprocess_text(enhance_text_for_speech(text))
        if not processed:
            raise SynthesisError("Text becomes empty after preprocessing")

        logger.info(f"Generating speech for {len(processed)} characters")
        audio = await asyncio.to_thread(
            self.transport, text=processed, voice_id=self.voice_id, config=self.config
        )

        self._count += 1
        path = None
        if self.audio_dir is not None:
            self.audio_dir.mkdir(parents=True, exist_ok=True)
            path = self.audio_dir / f"segment_{self._count}.mp3"
            path.write_bytes(audio)

        duration_ms = estimate_audio_duration(text)
        logger.info(f"Speech generated: {len(audio)} bytes, estimated {duration_ms}ms")
        return SpeechClip(audio=audio, duration_ms=duration_ms, text=text, voice_id=self.voice_id, path=path)
