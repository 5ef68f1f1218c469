"""
Export configuration.

A JSON file supplies the settings; environment variables prefixed with
CHAT_EXPORT_ (nested keys joined by "__", e.g. CHAT_EXPORT_WATCHER__ENABLED)
fill in anything the file leaves out. A ``.env`` file is honoured too.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

DEFAULT_PAGE_SIZE = 300
MAX_PAGE_SIZE = 900


class WatcherConfig(BaseModel):
    enabled: bool = False
    timeout: float = Field(20.0, gt=0, description="Quiescence window in seconds")


class AttachmentsConfig(BaseModel):
    download: bool = False
    directory: str = "attachments"
    add_stub: bool = True  # caption becomes "[Attachment <filename>] <title>"


class MessageTypesConfig(BaseModel):
    reactions: bool = True
    reaction_messages: bool = True
    system_messages: bool = True
    headline: bool = True


class JsonlConfig(BaseModel):
    enabled: bool = False
    file: str = "export.jsonl"


class ElasticsearchConfig(BaseModel):
    enabled: bool = False
    index_pattern: str = "chat_$channelname$"
    url: str = "http://localhost:9200"
    timeout: float = 10.0


class ExportSettings(BaseSettings):
    """Top-level export settings."""

    model_config = SettingsConfigDict(
        env_prefix="CHAT_EXPORT_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    chats: list[str]
    watcher: WatcherConfig = WatcherConfig()
    attachments: AttachmentsConfig = AttachmentsConfig()
    message_types: MessageTypesConfig = MessageTypesConfig()
    jsonl: JsonlConfig = JsonlConfig()
    elasticsearch: ElasticsearchConfig = ElasticsearchConfig()
    eol: str = "\n"
    page_size: int = Field(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    log_level: str = "INFO"
    transport: Optional[str] = None  # "package.module:factory"


def load_config(path: str | Path) -> ExportSettings:
    """Read and validate a JSON config file.

    Raises:
        ConfigError: file missing or unreadable, not JSON, or failing validation
    """
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {p}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {p} is not valid JSON: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"Config file {p} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {p}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {p} must contain a JSON object")

    try:
        return ExportSettings(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {p}: {e}") from e
