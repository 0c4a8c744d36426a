"""
mkdemo voices command

Lists the narration voices a run can pick from.
"""

from mk_common import error_response, success_response
from mk_tts import list_voices


def register(subparsers):
    """Register voices command."""
    voices_parser = subparsers.add_parser('voices', help='List available narration voices')
    voices_parser.add_argument('--gender', choices=['male', 'female'], help='Only voices of this gender')
    voices_parser.set_defaults(func=cmd_voices)


def cmd_voices(args) -> dict:
    """Handle mkdemo voices command."""
    try:
        voices = list_voices(getattr(args, 'gender', None))
    except Exception as e:
        return error_response(e, "Failed to list voices")
    return success_response(voices=voices, count=len(voices))
