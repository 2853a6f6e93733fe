"""Code Helper Bot runtime entry point."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from codehelper.config import ConfigError, ensure_data_directories, load_config
from codehelper.llm import CompletionClient, CredentialError, load_api_key
from codehelper.memory.conversation_state import ConversationStateStore
from codehelper.memory.engine import MemoryEngine
from codehelper.memory.episodic_memory import EpisodicMemoryStore
from codehelper.telegram_bot import TelegramBot, load_telegram_token


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Code Helper Bot")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the bot YAML config (default: config/codehelper.yaml)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        config = load_config(Path(args.config).resolve() if args.config else None)
        ensure_data_directories(config)
        api_key = load_api_key(config.paths.secrets_dir)
        token = load_telegram_token(config.paths.secrets_dir)
    except (ConfigError, CredentialError) as exc:
        print(f"codehelper: {exc}", file=sys.stderr)
        return 1

    memory_engine = MemoryEngine(config.paths.db_path)
    memory_engine.initialize()
    conn = memory_engine.connect()

    episodic_memory = EpisodicMemoryStore(conn)
    completion = CompletionClient(
        api_key,
        base_url=config.llm_base_url,
        model=config.llm_model,
    )
    telegram_bot = TelegramBot(
        config,
        token,
        store=ConversationStateStore(conn),
        completion=completion,
        episodic_memory=episodic_memory,
    )
    try:
        telegram_bot.start()
    finally:
        memory_engine.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
