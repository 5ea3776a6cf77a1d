"""Behaviour switches for parsing and deserialization."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ParseConfig:
    # Accept a second `[a]` when the first one followed a longer `[a.x]`
    allow_duplicate_after_longer_table: bool = False


@dataclass(frozen=True)
class DeserializeConfig:
    # Reject table keys a struct does not declare
    deny_unknown_fields: bool = False
