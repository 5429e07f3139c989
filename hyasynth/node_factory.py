"""Factories that build node instances, and the registry of node types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Iterator

from .node import Node, Polyphony


class NodeFactory(ABC):
    """Creates fresh node instances while a graph is being built."""

    @abstractmethod
    def create(self) -> Node:
        """Create one node instance."""

    @abstractmethod
    def polyphony(self) -> Polyphony:
        """Polyphony of the nodes this factory creates."""

    @abstractmethod
    def num_channels(self) -> int:
        """Number of output channels of the nodes this factory creates."""


class SimpleNodeFactory(NodeFactory):
    """A factory built from a callable; stereo unless told otherwise."""

    def __init__(
        self, create_fn: Callable[[], Node], polyphony: Polyphony, channels: int = 2
    ) -> None:
        self._create_fn = create_fn
        self._polyphony = polyphony
        self._channels = channels

    def create(self) -> Node:
        return self._create_fn()

    def polyphony(self) -> Polyphony:
        return self._polyphony

    def num_channels(self) -> int:
        return self._channels


@dataclass
class _Entry:
    info: Any
    factory: NodeFactory


class NodeRegistry:
    """Maps node type ids to their metadata and factory.

    The metadata object must have ``type_id`` and ``category`` attributes.
    """

    def __init__(self) -> None:
        self._entries: dict[int, _Entry] = {}

    def register(self, info: Any, factory: NodeFactory) -> None:
        """Register a node type; an existing entry with the same id is replaced."""
        self._entries[info.type_id] = _Entry(info, factory)

    def get_info(self, type_id: int) -> Any | None:
        entry = self._entries.get(type_id)
        return entry.info if entry is not None else None

    def get_factory(self, type_id: int) -> NodeFactory | None:
        entry = self._entries.get(type_id)
        return entry.factory if entry is not None else None

    def __iter__(self) -> Iterator[Any]:
        return (entry.info for entry in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def by_category(self) -> dict[str, list[Any]]:
        """Group the registered metadata by category."""
        groups: dict[str, list[Any]] = defaultdict(list)
        for entry in self._entries.values():
            groups[entry.info.category].append(entry.info)
        return dict(groups)