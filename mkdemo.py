"""
mkdemo - narrated, AI-driven demo videos of web applications.

Usage:
    mkdemo create --user me@example.com --password secret --url https://app.example.com
    mkdemo voices --gender female

Every command prints a JSON result; exit status is 0 on success, 1 otherwise.
"""

import argparse
import sys

from mk_commands import create, voices
from mk_common import dump_json

COMMAND_GROUPS = (create, voices)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mkdemo',
        description='Create narrated demo videos by letting an AI drive a website',
    )
    subparsers = parser.add_subparsers(dest='command')
    for group in COMMAND_GROUPS:
        group.register(subparsers)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, 'func', None):
        parser.print_help()
        return 1

    result = args.func(args)
    print(dump_json(result))
    return 0 if result.get("success") else 1


if __name__ == '__main__':
    sys.exit(main())
