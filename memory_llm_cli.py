#!/usr/bin/env python3
"""
Memory LLM CLI - Command line interface for the Memory LLM layer.

Usage:
    memory-llm config show [--section=SECTION]
    memory-llm config validate
    memory-llm model-name
    memory-llm count-tokens --text=TEXT [--model=MODEL]
    memory-llm summarize --file=FILE [--window=N] [--min-pending=N]
    memory-llm embed --type=TYPE --text=TEXT
    memory-llm version
    memory-llm --help

Commands:
    config              Show or validate configuration
    model-name          Print the validated completion model name
    count-tokens        Count tokens of a text for a model
    summarize           Summarize a conversation stored as JSON or YAML
    embed               Embed a text for a document type (message, document)
    version             Show version information

Options:
    -h --help           Show this help message
    --config=DIR        Configuration directory
    --section=SECTION   Configuration section
    --text=TEXT         Input text
    --model=MODEL       Model name [default: configured completion model]
    --file=FILE         Conversation file with "messages" and optional "summary"
    --window=N          Message window size [default: summarizer.window_size]
    --min-pending=N     Minimum messages left pending [default: 0]
    --type=TYPE         Document type
"""

import asyncio
import json
import os
import sys
import traceback
from typing import Any, Dict, List, Optional, Tuple

import yaml

from memory_llm import __version__
from memory_llm.config.config_manager import ConfigManager, ConfigValidationError, init_config
from memory_llm.embeddings.router import EmbeddingRouter
from memory_llm.extractors.summarizer import summarize
from memory_llm.llm.factory import LLMProviderFactory, get_model_name
from memory_llm.llm.interfaces.llm_provider_interface import ClientPurpose, LLMError
from memory_llm.llm.tokens import TokenCounter
from memory_llm.model.message import Message, Summary
from memory_llm.monitoring.structured_logger import LoggingContext, configure_logging


class CLIError(Exception):
    """Raised for invalid command usage."""

    pass


class MemoryLLMCLI:
    """Memory LLM command line interface."""

    def __init__(self, config_dir: Optional[str] = None):
        self.config_dir = config_dir
        self.config_manager: Optional[ConfigManager] = None

    def initialize(self) -> ConfigManager:
        """Load configuration and set up logging."""
        if self.config_manager is None:
            self.config_manager = init_config(self.config_dir)
            configure_logging(self.config_manager.config.logging)
        return self.config_manager

    def config_command(self, action: str, section: Optional[str] = None):
        """Manage configuration."""
        if action == "show":
            self._show_config(section)
        elif action == "validate":
            self._validate_config()
        else:
            raise CLIError(f"Unknown config action: {action}")

    def _show_config(self, section: Optional[str] = None):
        config = self.initialize().to_dict()
        if section:
            if section not in config:
                raise CLIError(f"Unknown configuration section: {section}")
            config = config[section]
            print(f"📋 Configuration - {section}")
        else:
            print("📋 Configuration")

        print("=" * 50)
        print(yaml.dump(config, indent=2, sort_keys=False))

    def _validate_config(self):
        print("Validating configuration...")
        config = self.initialize().config

        # Resolve both provider variants without building clients
        factory = LLMProviderFactory()

        factory.to_provider_variant(
            config.provider_config(ClientPurpose.COMPLETION), ClientPurpose.COMPLETION
        )
        if config.uses_openai_embeddings():
            factory.to_provider_variant(
                config.provider_config(ClientPurpose.EMBEDDINGS),
                ClientPurpose.EMBEDDINGS,
                embeddings_enabled=True,
            )
        print("✅ Configuration is valid")

    def model_name_command(self):
        print(get_model_name(self.initialize().config))

    def count_tokens_command(self, text: str, model: Optional[str] = None):
        config = self.initialize().config
        counter = TokenCounter(model or config.llm.model)
        count = counter.count(text)
        suffix = " (approximate)" if counter.approximate else ""
        print(f"{count} tokens{suffix}, model limit {counter.max_tokens()}")

    async def summarize_command(
        self, file: str, window: Optional[int] = None, min_pending: int = 0
    ):
        config = self.initialize().config
        messages, prior = load_conversation(file)
        window_size = window if window is not None else config.summarizer.window_size

        with LoggingContext():
            summary = await summarize(window_size, messages, prior, min_pending, config=config)

        print(json.dumps(summary.to_dict(), indent=2))

    async def embed_command(self, document_type: str, text: str):
        config = self.initialize().config
        router = EmbeddingRouter(config)
        try:
            model = router.get_embedding_model(document_type)
            with LoggingContext():
                vectors = await router.embed_texts(model, document_type, [text])
        finally:
            await router.close()

        print(
            json.dumps(
                {
                    "service": model.service,
                    "dimensions": int(vectors.shape[1]),
                    "embedding": vectors[0].tolist(),
                }
            )
        )

    def version_command(self):
        print(f"Memory LLM CLI v{__version__}")


def load_conversation(path: str) -> Tuple[List[Message], Optional[Summary]]:
    """
    Read a conversation file.

    The file holds either a list of messages or a mapping with ``messages``
    and an optional prior ``summary``. YAML is accepted for ``.yaml``/``.yml``
    files, JSON otherwise.
    """
    with open(path, "r") as f:
        if path.endswith((".yaml", ".yml")):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if isinstance(data, list):
        data = {"messages": data}
    if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
        raise CLIError(f"{path} does not contain a list of messages")

    messages = [Message.from_dict(item) for item in data["messages"]]
    prior = Summary.from_dict(data["summary"]) if data.get("summary") else None
    return messages, prior


def parse_args(argv: Optional[List[str]] = None) -> Tuple[str, Dict[str, Any]]:
    """Parse command line arguments manually."""
    argv = sys.argv[1:] if argv is None else argv

    if not argv:
        print(__doc__)
        sys.exit(1)

    command = argv[0]
    args: Dict[str, Any] = {}

    i = 1
    while i < len(argv):
        arg = argv[i]

        if arg.startswith("--"):
            if "=" in arg:
                key, value = arg[2:].split("=", 1)
                args[key] = value
            else:
                key = arg[2:]
                if i + 1 < len(argv) and not argv[i + 1].startswith("--"):
                    args[key] = argv[i + 1]
                    i += 1
                else:
                    args[key] = True
        else:
            args.setdefault("positional", []).append(arg)

        i += 1

    return command, args


def _require(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not value or value is True:
        raise CLIError(f"--{key} is required")
    return value


async def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    command, args = parse_args(argv)
    cli = MemoryLLMCLI(config_dir=args.get("config"))

    try:
        if command == "config":
            positional = args.get("positional", [])
            if not positional:
                raise CLIError("Config command requires action (show, validate)")
            cli.config_command(positional[0], section=args.get("section"))

        elif command == "model-name":
            cli.model_name_command()

        elif command == "count-tokens":
            cli.count_tokens_command(_require(args, "text"), model=args.get("model"))

        elif command == "summarize":
            window = args.get("window")
            await cli.summarize_command(
                _require(args, "file"),
                window=int(window) if window else None,
                min_pending=int(args.get("min-pending", 0)),
            )

        elif command == "embed":
            await cli.embed_command(_require(args, "type"), _require(args, "text"))

        elif command == "version":
            cli.version_command()

        elif command in ["--help", "-h", "help"]:
            print(__doc__)

        else:
            print(f"❌ Unknown command: {command}")
            print("Run 'memory-llm --help' for usage information")
            return 1

    except KeyboardInterrupt:
        print("\n🛑 Operation cancelled")
        return 1
    except (CLIError, ConfigValidationError, LLMError, OSError, ValueError, yaml.YAMLError) as e:
        print(f"❌ {e}")
        if os.getenv("DEBUG"):
            traceback.print_exc()
        return 1

    return 0


def run():
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
