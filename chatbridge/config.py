"""Runtime configuration, read once at startup from env, .env and CLI flags."""

import argparse
import os
from dataclasses import dataclass
from typing import List, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_COMPLETION_URL = "https://api.openai.com/v1/completions"
DEFAULT_MODEL = "gpt-3.5-turbo"
REQUEST_TIMEOUT_SECONDS = 5.0
MAX_TOKENS = 128
TEMPERATURE = 0.9

_TRUTHY = ("1", "true", "yes", "on")


class ConfigError(Exception):
    """A required setting is missing or invalid."""


@dataclass(frozen=True)
class BotConfig:
    bot_token: str
    completion_api_key: str
    guild_id: Optional[int] = None  # None = global command registration
    completion_url: str = DEFAULT_COMPLETION_URL
    model: str = DEFAULT_MODEL
    trim_leading_char: bool = True

    @property
    def is_global(self) -> bool:
        return self.guild_id is None


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chatbridge",
        description="Discord bot relaying /chat prompts to a text-completion API.",
    )
    parser.add_argument(
        "--guild",
        "-guild",
        dest="guild",
        default=None,
        help="Test guild ID. If not passed - bot registers commands globally",
    )
    return parser


def _parse_guild_id(raw: str) -> Optional[int]:
    raw = raw.strip()
    if not raw:
        return None
    if not raw.isdigit():
        raise ConfigError(f"Guild ID must be numeric, got {raw!r}")
    return int(raw)


def load_config(argv: Optional[List[str]] = None, env: Optional[Mapping[str, str]] = None) -> BotConfig:
    """Build the BotConfig. ``env`` defaults to os.environ after loading .env."""
    if env is None:
        load_dotenv(override=False)
        env = os.environ

    args = build_arg_parser().parse_args(argv)

    bot_token = env.get("DISCORD_TOKEN", "").strip()
    if not bot_token:
        raise ConfigError("Token cannot be empty")

    guild_raw = args.guild if args.guild is not None else env.get("GUILD_ID", "")

    return BotConfig(
        bot_token=bot_token,
        # Not validated here; a missing key fails authentication per request.
        completion_api_key=env.get("GPT_TOKEN", "").strip(),
        guild_id=_parse_guild_id(guild_raw),
        completion_url=env.get("COMPLETION_URL", "").strip() or DEFAULT_COMPLETION_URL,
        model=env.get("COMPLETION_MODEL", "").strip() or DEFAULT_MODEL,
        trim_leading_char=env.get("COMPLETION_TRIM_LEADING_CHAR", "true").strip().lower() in _TRUTHY,
    )
