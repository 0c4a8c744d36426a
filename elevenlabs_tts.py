"""
ElevenLabs Text-to-Speech transport.

Security:
- Reads API key from ELEVENLABS_API_KEY env var (or explicit arg).
- Never logs secrets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
import logging
import os
import time

import requests

from mk_common import ConfigError, SynthesisError

logger = logging.getLogger(__name__)

DEFAULT_VOICE_SETTINGS = {
    "stability": 0.6,
    "similarity_boost": 0.85,
    "style": 0.2,
    "use_speaker_boost": True,
}


@dataclass(frozen=True)
class ElevenLabsTtsConfig:
    api_key: str = field(repr=False)
    voice_id: Optional[str] = None
    model_id: str = "eleven_monolingual_v1"
    output_format: str = "mp3_44100_128"
    base_url: str = "https://api.elevenlabs.io"
    voice_settings: Dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_VOICE_SETTINGS))
    max_retries: int = 3
    timeout_s: int = 30


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def load_elevenlabs_config(
    *,
    api_key: Optional[str] = None,
    voice_id: Optional[str] = None,
    model_id: Optional[str] = None,
    output_format: Optional[str] = None,
) -> ElevenLabsTtsConfig:
    api_key = api_key or _env("ELEVENLABS_API_KEY")
    if not api_key:
        raise ConfigError(
            "Missing ElevenLabs API key. Set ELEVENLABS_API_KEY in your environment."
        )

    # No default voice here: the synthesizer picks one from the catalog when unset
    voice_id = voice_id or _env("ELEVENLABS_VOICE_ID")

    model_id = model_id or _env("ELEVENLABS_MODEL_ID") or "eleven_monolingual_v1"
    output_format = output_format or _env("ELEVENLABS_OUTPUT_FORMAT") or "mp3_44100_128"

    return ElevenLabsTtsConfig(
        api_key=api_key,
        voice_id=voice_id,
        model_id=model_id,
        output_format=output_format,
    )


def _post_once(text: str, voice_id: str, config: ElevenLabsTtsConfig) -> bytes:
    url = f"{config.base_url}/v1/text-to-speech/{voice_id}"
    params = {"output_format": config.output_format}
    headers = {
        "xi-api-key": config.api_key,
        "accept": "audio/mpeg",
        "content-type": "application/json",
    }
    payload = {
        "text": text,
        "model_id": config.model_id,
        "voice_settings": config.voice_settings,
    }

    resp = requests.post(url, params=params, headers=headers, json=payload, timeout=config.timeout_s)
    if resp.status_code >= 400:
        # Avoid printing headers (contains the key).
        raise SynthesisError(
            f"ElevenLabs TTS failed: HTTP {resp.status_code} - {resp.text[:500]}"
        )
    if not resp.content:
        raise SynthesisError("ElevenLabs TTS returned an empty clip")
    return resp.content


def request_speech(
    *,
    text: str,
    voice_id: str,
    config: ElevenLabsTtsConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """
    Synthesize text and return the audio bytes.

    Retries with exponential backoff (1s, 2s, ...) and raises
    SynthesisError once max_retries attempts have failed.
    """
    if not text or not text.strip():
        raise SynthesisError("TTS text is empty.")

    last_error: Optional[Exception] = None
    for attempt in range(config.max_retries):
        try:
            return _post_once(text, voice_id, config)
        except (requests.RequestException, SynthesisError) as e:
            last_error = e
            logger.warning(f"Speech synthesis attempt {attempt + 1}/{config.max_retries} failed: {e}")
            if attempt < config.max_retries - 1:
                sleep(2 ** attempt)

    raise SynthesisError(f"Speech synthesis failed after {config.max_retries} attempts: {last_error}")
