"""Adapter contract for arena front ends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class ArenaAdapterMetadata:
    """Identity and capability metadata for an arena adapter."""

    name: str
    version: str
    capabilities: tuple[str, ...] = ()


class ArenaAdapter(Protocol):
    """Lifecycle contract for arena adapters."""

    metadata: ArenaAdapterMetadata

    def start(self) -> None:
        """Start the adapter lifecycle and block until stopped."""

    def stop(self) -> None:
        """Stop the adapter lifecycle and release resources."""
