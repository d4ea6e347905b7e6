"""
Tests for the memory-llm command line interface.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
import yaml

import memory_llm_cli
from memory_llm.model.message import Summary


class TestParseArgs:
    def test_options_and_positionals(self):
        command, args = memory_llm_cli.parse_args(
            ["config", "show", "--section=llm", "--window", "10", "--verbose"]
        )
        assert command == "config"
        assert args == {
            "positional": ["show"],
            "section": "llm",
            "window": "10",
            "verbose": True,
        }


class TestLoadConversation:
    def test_json_list(self, tmp_path):
        path = tmp_path / "conversation.json"
        path.write_text(json.dumps([{"uuid": "a", "role": "user", "content": "hi"}]))

        messages, prior = memory_llm_cli.load_conversation(str(path))

        assert [m.uuid for m in messages] == ["a"]
        assert prior is None

    def test_yaml_with_summary(self, tmp_path):
        path = tmp_path / "conversation.yaml"
        path.write_text(
            yaml.dump(
                {
                    "messages": [{"uuid": "a", "content": "hi"}, {"uuid": "b", "content": None}],
                    "summary": {"content": "earlier", "summary_point_uuid": "a"},
                }
            )
        )

        messages, prior = memory_llm_cli.load_conversation(str(path))

        assert messages[1].content == ""
        assert prior.summary_point_uuid == "a"

    def test_rejects_other_shapes(self, tmp_path):
        path = tmp_path / "conversation.json"
        path.write_text(json.dumps({"turns": []}))

        with pytest.raises(memory_llm_cli.CLIError):
            memory_llm_cli.load_conversation(str(path))


class TestMain:
    @pytest.mark.asyncio
    async def test_version(self, capsys):
        assert await memory_llm_cli.main(["version"]) == 0
        assert "Memory LLM CLI v0.1.0" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_unknown_command(self):
        assert await memory_llm_cli.main(["frobnicate"]) == 1

    @pytest.mark.asyncio
    async def test_missing_required_option(self, capsys, tmp_path):
        assert await memory_llm_cli.main(["count-tokens", f"--config={tmp_path}"]) == 1
        assert "--text is required" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_summarize(self, capsys, tmp_path):
        path = tmp_path / "conversation.json"
        path.write_text(json.dumps([{"uuid": str(i), "content": f"m{i}"} for i in range(12)]))
        fake_summarize = AsyncMock(
            return_value=Summary(content="short", token_count=1, summary_point_uuid="6")
        )

        with patch.object(memory_llm_cli, "summarize", fake_summarize), patch.object(
            memory_llm_cli, "configure_logging"
        ):
            code = await memory_llm_cli.main(
                ["summarize", f"--file={path}", "--window=10", f"--config={tmp_path}"]
            )

        assert code == 0
        args = fake_summarize.await_args.args
        assert args[0] == 10
        assert len(args[1]) == 12
        output = json.loads(capsys.readouterr().out)
        assert output["summary_point_uuid"] == "6"
