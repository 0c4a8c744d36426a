"""
Shared utilities for mkdemo.

Error classification, structured responses, and media tool resolution.
"""

from pathlib import Path
from typing import Optional
import subprocess
import json
import os

# Error classification
class MKError(Exception):
    code = "UNKNOWN"
    suggestion = ""

class ValidationError(MKError):
    """Caller errors: bad or missing inputs, rejected before any I/O."""
    code = "VALIDATION"

class ConfigError(MKError):
    """Configuration/setup errors."""
    code = "CONFIG"

class AuthError(MKError):
    """Login negotiation did not produce a usable session."""
    code = "AUTH_ERROR"

class StepExecutionError(MKError):
    code = "STEP_FAILED"

class ElementNotFoundError(StepExecutionError):
    """Every resolution strategy missed."""
    code = "ELEMENT_NOT_FOUND"

    def __init__(self, selector: str, description: str = ""):
        self.selector = selector
        self.description = description
        msg = f"Element not found: {selector}"
        if description:
            msg += f" ({description})"
        super().__init__(msg)

class PlanningError(MKError):
    code = "PLANNING"

class NarrationError(MKError):
    code = "NARRATION"

class SynthesisError(MKError):
    code = "SYNTHESIS"

class FinalizeError(MKError):
    code = "FINALIZE"


def classify_error(e: Exception) -> str:
    """Classify error for structured output."""
    if isinstance(e, MKError):
        return e.code

    error_str = str(e).lower()

    if "api" in error_str or "timeout" in error_str or "connection" in error_str:
        return "TRANSIENT"
    elif "not found" in error_str or "missing" in error_str:
        return "NOT_FOUND"
    elif "invalid" in error_str or "format" in error_str:
        return "VALIDATION"
    elif "key" in error_str or "auth" in error_str or "unauthorized" in error_str:
        return "AUTH_ERROR"
    else:
        return "UNKNOWN"

def get_suggestion(e: Exception) -> str:
    """Get actionable suggestion for error."""
    if isinstance(e, MKError) and e.suggestion:
        return e.suggestion

    code = classify_error(e)

    suggestions = {
        "TRANSIENT": "This may be a temporary issue. Try again in a few seconds.",
        "NOT_FOUND": "Check that the target URL is reachable and shows the page you expect.",
        "VALIDATION": "Check the command options: email-shaped --user, http(s) --url, --max-interactions between 1 and 20.",
        "CONFIG": "Check your .env file and required API keys.",
        "AUTH_ERROR": "Check the credentials and that the target URL shows a login form.",
        "ELEMENT_NOT_FOUND": "The page changed under the plan. Re-run, or pass --skip-missing to continue past unresolved steps.",
        "STEP_FAILED": "Inspect the execution log for the failing step.",
        "PLANNING": "The reasoning service failed or returned an unusable plan. Check OPENAI_API_KEY and OPENAI_MODEL.",
        "NARRATION": "The reasoning service failed while writing narration. Try again.",
        "SYNTHESIS": "Speech synthesis failed after retries. Check ELEVENLABS_API_KEY and the voice id.",
        "FINALIZE": "Video encoding failed. Check that ffmpeg is installed and the output directory is writable.",
        "UNKNOWN": "Check the error message for details."
    }

    return suggestions.get(code, suggestions["UNKNOWN"])

def error_response(e: Exception, context: str = "") -> dict:
    """
    Create standardized error response dict from exception.

    Args:
        e: The exception that was raised
        context: Optional context about what operation failed

    Returns:
        Standardized error dict with success, error, code, suggestion
    """
    error_code = classify_error(e)
    error_msg = f"{context}: {str(e)}" if context else str(e)

    return {
        "success": False,
        "error": error_msg,
        "code": error_code,
        "suggestion": get_suggestion(e)
    }

def success_response(**kwargs) -> dict:
    """Create standardized success response dict."""
    return {"success": True, **kwargs}


# Media utilities
def get_ffmpeg() -> Optional[str]:
    """
    Get path to ffmpeg binary.

    Tries in order:
    1. System ffmpeg (via PATH)
    2. imageio-ffmpeg bundled binary

    Returns:
        Path to ffmpeg binary or None if not found
    """
    try:
        subprocess.run(
            ["ffmpeg", "-version"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
            timeout=2
        )
        return "ffmpeg"
    except (OSError, subprocess.SubprocessError):
        pass

    try:
        import imageio_ffmpeg
        exe = imageio_ffmpeg.get_ffmpeg_exe()
        if exe and Path(exe).exists():
            return exe
    except (ImportError, RuntimeError):
        pass

    return None


def require_ffmpeg() -> str:
    """
    Get ffmpeg path or raise error if not found.

    Raises:
        ConfigError: If ffmpeg is not found
    """
    ffmpeg = get_ffmpeg()
    if not ffmpeg:
        raise ConfigError(
            "ffmpeg not found. Install system ffmpeg or 'pip install imageio-ffmpeg'"
        )
    return ffmpeg


# Environment variable validation
ENV_VARS = {
    "OPENAI_API_KEY": {"required_for": ["create"], "optional": False},
    "ELEVENLABS_API_KEY": {"required_for": ["create"], "optional": False},
    "OPENAI_MODEL": {"required_for": ["create"], "optional": True},
    "ELEVENLABS_VOICE_ID": {"required_for": ["create"], "optional": True},
}

def validate_env_for_command(command: str) -> dict:
    """Validate required env vars for a command."""
    missing = []
    for var, config in ENV_VARS.items():
        if command in config.get("required_for", []):
            if not os.environ.get(var) and not config.get("optional"):
                missing.append(var)

    if missing:
        return {
            "success": False,
            "error": f"Missing required environment variables: {', '.join(missing)}",
            "code": "CONFIG_ERROR",
            "suggestion": f"Set these environment variables: {', '.join(missing)}"
        }
    return {"success": True}


def dump_json(data: dict) -> str:
    """Serialize a result dict for CLI output."""
    return json.dumps(data, indent=2, default=str)
