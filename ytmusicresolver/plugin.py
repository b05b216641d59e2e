#!/usr/bin/env python3

"""The contract between an extractor plugin and the host queue framework."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from ytmusicresolver.models import Resolved, Song


class Host(Protocol):
    """What the plugin needs from the host framework.

    ``stream_options`` holds format-selection overrides (``filter``,
    ``quality``) applied when a stream URL is chosen.
    """

    stream_options: Dict[str, Any]


class PluginState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class ExtractorPlugin(ABC):
    """A source the host can resolve URLs, searches and streams through.

    The host constructs the plugin once and calls :meth:`init` before any
    other coroutine.  :meth:`validate` must stay synchronous and free of I/O.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def init(self, host: Host) -> None:
        ...

    @abstractmethod
    def validate(self, url: str) -> bool:
        ...

    @abstractmethod
    async def resolve(self, url: str, member: Any = None, metadata: Any = None) -> Resolved:
        ...

    @abstractmethod
    async def search_song(
        self, query: str, member: Any = None, metadata: Any = None
    ) -> Optional[Song]:
        ...

    @abstractmethod
    async def get_stream_url(self, song: Song) -> str:
        ...

    @abstractmethod
    async def get_related_songs(self, song: Song) -> List[Song]:
        ...
