"""
CLI parsing and dispatch tests
"""
import json
from unittest.mock import patch

import pytest

from mk_commands.create import build_config
from mkdemo import build_parser, main


class TestParser:

    def test_create_defaults(self, monkeypatch):
        monkeypatch.delenv("VIDEO_FPS", raising=False)
        monkeypatch.delenv("VIDEO_QUALITY", raising=False)
        args = build_parser().parse_args(
            ["create", "-u", "me@x.test", "-p", "pw", "--url", "https://x.test"])

        config = build_config(args)

        assert config.headless is True
        assert config.max_interactions == 10
        assert str(config.output_dir) == "output"
        assert config.recording.fps == 30
        assert config.skip_missing_elements is False

    def test_create_options(self):
        args = build_parser().parse_args([
            "create", "--user", "me@x.test", "--password", "pw", "--url", "https://x.test",
            "--headed", "--max-interactions", "5", "--fps", "24", "--quality", "low",
            "--gender", "female", "--skip-missing", "-v",
        ])

        config = build_config(args)

        assert config.headless is False
        assert config.browser.headless is False
        assert config.planner.max_interactions == 5
        assert (config.recording.fps, config.recording.quality) == (24, "low")
        assert config.voice_gender == "female"
        assert config.skip_missing_elements and config.verbose

    def test_headless_and_headed_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([
                "create", "-u", "a@b.c", "-p", "x", "--url", "https://x.test", "--headless", "--headed"])

    def test_required_options(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["create", "--url", "https://x.test"])


class TestMain:

    def test_voices(self, capsys):
        assert main(["voices", "--gender", "male"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["success"] is True
        assert out["count"] == 5

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    @patch("mk_commands.create.create_demo")
    def test_create_failure_exit_code(self, mock_create, capsys):
        mock_create.return_value = {"success": False, "error": "Authentication failed", "code": "AUTH_ERROR"}

        code = main(["create", "-u", "me@x.test", "-p", "pw", "--url", "https://x.test"])

        assert code == 1
        assert json.loads(capsys.readouterr().out)["code"] == "AUTH_ERROR"
        assert mock_create.call_args.args[0].identifier == "me@x.test"
