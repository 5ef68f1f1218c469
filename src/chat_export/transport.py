"""
The chat transport capability consumed by the pipeline.

Connection, authentication and the wire protocol live outside this package;
anything satisfying ``Transport`` can drive an export.
"""

from __future__ import annotations

import importlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence

from .errors import ConfigError
from .log import warn
from .models import ChannelInfo, RawEvent

OnEvent = Callable[[RawEvent], None]
OnError = Callable[[BaseException], None]

_SPECIAL_QUERY = re.compile(r"^\$(.+?)\$(.+)")


@dataclass(frozen=True)
class ReadResult:
    """One page of history, newest event first."""

    events: Sequence[RawEvent]
    next_cursor: Optional[str]
    is_last: bool


class Transport(Protocol):
    async def list_channels(self) -> list[ChannelInfo]:
        ...

    async def read(
        self, channel: ChannelInfo, *, page_size: int, cursor: Optional[str] = None
    ) -> ReadResult:
        ...

    async def subscribe(self, channel: ChannelInfo, on_event: OnEvent, on_error: OnError) -> Any:
        """Register a live subscription; returns once registered."""
        ...

    async def download(self, channel: ChannelInfo, message_id: int, destination: Path) -> None:
        ...

    async def close(self) -> None:
        ...


def find_channel(channels: Sequence[ChannelInfo], query: str) -> ChannelInfo | None:
    """Look up a channel by query string.

    Accepted forms:
        - ``you,them`` (channel name)
        - ``family#general`` (team name and topic)
        - ``$id$0000f0b5...`` (channel id)
    """
    special = _SPECIAL_QUERY.match(query)
    if special is None:
        team, _, topic = query.partition("#")
        if topic:
            return next(
                (c for c in channels if c.name == team and c.topic_name == topic),
                None,
            )
        return next((c for c in channels if c.name == query), None)

    mode, value = special.groups()
    if mode == "id":
        return next((c for c in channels if c.id == value), None)

    warn(f"Unknown mode '{mode}' in chat query '{query}'")
    return None


def load_transport(path: str, *args: Any, **kwargs: Any) -> Transport:
    """Build a transport from a ``module:factory`` import path."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"transport must look like 'module:factory', got '{path}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import transport module '{module_name}': {e}") from e
    try:
        factory = getattr(module, attr)
    except AttributeError as e:
        raise ConfigError(f"Module '{module_name}' has no attribute '{attr}'") from e
    return factory(*args, **kwargs)
