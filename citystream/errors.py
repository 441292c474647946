from __future__ import annotations

from typing import Any


class UnknownDomainValue(ValueError):
    """A lookup key outside the closed enum domains (programmer error)."""

    def __init__(self, kind: str, value: Any):
        self.kind = kind
        self.value = value
        super().__init__(f"unknown {kind}: {value!r}")


class StoreError(RuntimeError):
    """The external record/alert store was unreachable or answered badly."""


class GeneratorRunningError(RuntimeError):
    """Generator settings can only change while the generator is stopped."""
