"""
Board Coordinator — Generation Type Definitions

Scopes and the provider-result shapes every content provider returns.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Union


# ─── Scope ──────────────────────────────────────────────────────────

class ScopeKind(str, enum.Enum):
    """Granularity of a generation and the merge it implies."""
    BOARD_REPLACE = "board_replace"      # whole document, fresh sections
    BOARD_PRESERVE = "board_preserve"    # whole document, ids/points/flags kept
    SECTION = "section"
    CELL = "cell"


@dataclass(frozen=True)
class GenerationScope:
    kind: ScopeKind
    section_index: int | None = None
    cell_index: int | None = None

    @staticmethod
    def board(preserve: bool = True) -> GenerationScope:
        return GenerationScope(ScopeKind.BOARD_PRESERVE if preserve else ScopeKind.BOARD_REPLACE)

    @staticmethod
    def section(section_index: int) -> GenerationScope:
        return GenerationScope(ScopeKind.SECTION, section_index=section_index)

    @staticmethod
    def cell(section_index: int, cell_index: int) -> GenerationScope:
        return GenerationScope(ScopeKind.CELL, section_index=section_index, cell_index=cell_index)

    @property
    def is_board(self) -> bool:
        return self.kind in (ScopeKind.BOARD_REPLACE, ScopeKind.BOARD_PRESERVE)

    def describe(self) -> str:
        if self.kind is ScopeKind.SECTION:
            return f"section[{self.section_index}]"
        if self.kind is ScopeKind.CELL:
            return f"cell[{self.section_index}][{self.cell_index}]"
        return self.kind.value


# ─── Provider Results ───────────────────────────────────────────────

@dataclass(frozen=True)
class GeneratedCell:
    prompt_text: str
    revealed_text: str
    # None means the provider expressed no opinion
    bonus_flag: bool | None = None


@dataclass(frozen=True)
class GeneratedSection:
    title: str
    cells: tuple[GeneratedCell, ...] = field(default_factory=tuple)


# whole board, section, single cell
ProviderResult = Union[list[GeneratedSection], list[GeneratedCell], GeneratedCell]
