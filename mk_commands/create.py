"""
mkdemo create command

Logs in to a site, lets the planner drive it, and writes a narrated video.
"""

import argparse
from pathlib import Path

from mk_common import error_response
from mk_config import DemoConfig, PlannerConfig, RecordingConfig, load_dotenv_once
from mk_demo import create_demo


def register(subparsers):
    """Register create command."""
    create_parser = subparsers.add_parser('create', help='Record a narrated demo video of a website')
    create_parser.add_argument('--user', '-u', required=True, help='Login email')
    create_parser.add_argument('--password', '-p', required=True, help='Login password')
    create_parser.add_argument('--url', required=True, help='Website URL (http/https)')
    create_parser.add_argument('--output', '-o', default='./output', help='Output directory')
    create_parser.add_argument('--max-interactions', type=int, default=10, help='Maximum planned steps (1-20)')
    headless = create_parser.add_mutually_exclusive_group()
    headless.add_argument('--headless', dest='headless', action='store_true', default=True,
                          help='Run browser headless (default)')
    headless.add_argument('--headed', dest='headless', action='store_false', help='Show the browser window')
    create_parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging on the console')
    create_parser.add_argument('--fps', type=int, help='Capture frame rate (default: VIDEO_FPS or 30)')
    create_parser.add_argument('--quality', choices=['high', 'medium', 'low'],
                               help='Encode quality (default: VIDEO_QUALITY or high)')
    create_parser.add_argument('--voice', help='ElevenLabs voice ID (pins the narrator)')
    create_parser.add_argument('--gender', choices=['male', 'female'], help='Random voice of this gender')
    create_parser.add_argument('--skip-missing', action='store_true',
                               help='Skip steps whose element cannot be found instead of failing')
    create_parser.set_defaults(func=cmd_create)


def build_config(args: argparse.Namespace) -> DemoConfig:
    load_dotenv_once()
    return DemoConfig(
        identifier=args.user,
        secret=args.password,
        url=args.url,
        output_dir=Path(args.output),
        max_interactions=args.max_interactions,
        headless=args.headless,
        verbose=args.verbose,
        voice_id=args.voice,
        voice_gender=args.gender,
        skip_missing_elements=args.skip_missing,
        recording=RecordingConfig.from_env(fps=args.fps, quality=args.quality),
        planner=PlannerConfig.from_env(),
    )


def cmd_create(args) -> dict:
    """Handle mkdemo create command."""
    try:
        config = build_config(args)
    except Exception as e:
        return error_response(e, "Invalid options")
    return create_demo(config)
