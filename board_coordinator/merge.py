"""
Board Coordinator — Merge Strategies

Pure functions ``(existing_sections, provider_result) -> new_sections``.
None of them look at generation state; the session decides whether a
result is still wanted and routes the write through the gate.

  whole_document_replace  fresh sections, shape locked, one bonus per section
  subtree_rewrite         one section, text only, ids/points kept
  cell_patch              one cell, text only
  zip_merge_preserving    every section, titles + text only
"""

from __future__ import annotations

import random
from dataclasses import replace
from functools import partial
from typing import Any, Callable, Sequence

from board_engine.types import GeneratedCell, GeneratedSection, GenerationScope, ScopeKind
from board_coordinator.document import (
    PLACEHOLDER_PROMPT,
    PLACEHOLDER_REVEALED,
    Cell,
    Section,
    Sections,
    current_scale,
    generate_id,
)

MergeStrategy = Callable[[Sections, Any], Sections]


def whole_document_replace(
    existing: Sections,
    result: Sequence[GeneratedSection],
    rng: random.Random | None = None,
) -> Sections:
    """
    Replace every section wholesale.

    The existing shape is kept: missing sections/cells become placeholders,
    extra ones are dropped. Point values come from the existing positions.
    """
    rng = rng or random.Random()
    scale = current_scale(existing)
    sections = []

    for s_idx, old_section in enumerate(existing):
        generated = result[s_idx] if s_idx < len(result) else None
        gen_cells = generated.cells if generated is not None else ()

        cells = []
        for c_idx, old_cell in enumerate(old_section.cells):
            gen = gen_cells[c_idx] if c_idx < len(gen_cells) else None
            cells.append(Cell(
                id=generate_id(),
                prompt_text=gen.prompt_text if gen else PLACEHOLDER_PROMPT,
                revealed_text=gen.revealed_text if gen else PLACEHOLDER_REVEALED,
                point_value=old_cell.point_value or (c_idx + 1) * scale,
                bonus_flag=bool(gen and gen.bonus_flag),
            ))

        if cells:
            marked = [i for i, c in enumerate(cells) if c.bonus_flag]
            keep = marked[0] if marked else rng.randrange(len(cells))
            cells = [replace(c, bonus_flag=(i == keep)) for i, c in enumerate(cells)]

        sections.append(Section(
            id=generate_id(),
            title=generated.title if generated is not None else f"Category {s_idx + 1}",
            cells=tuple(cells),
        ))

    return tuple(sections)


def _rewrite_cells(cells: tuple[Cell, ...], generated: Sequence[GeneratedCell]) -> tuple[Cell, ...]:
    return tuple(
        cell.with_text(generated[i].prompt_text, generated[i].revealed_text)
        if i < len(generated) else cell
        for i, cell in enumerate(cells)
    )


def subtree_rewrite(existing: Sections, result: Sequence[GeneratedCell], section_index: int) -> Sections:
    """Positional text rewrite of one section."""
    sections = list(existing)
    target = sections[section_index]
    sections[section_index] = replace(target, cells=_rewrite_cells(target.cells, result))
    return tuple(sections)


def cell_patch(existing: Sections, result: GeneratedCell, section_index: int, cell_index: int) -> Sections:
    sections = list(existing)
    target = sections[section_index]
    cell = target.cells[cell_index].with_text(result.prompt_text, result.revealed_text)
    sections[section_index] = target.with_cell(cell_index, cell)
    return tuple(sections)


def zip_merge_preserving(existing: Sections, result: Sequence[GeneratedSection]) -> Sections:
    """
    Pairwise merge by position across the whole board.

    Titles and cell text come from the result; ids, point values and the
    answered/voided/bonus flags are always the existing ones.
    """
    merged = []
    for s_idx, section in enumerate(existing):
        if s_idx >= len(result):
            merged.append(section)
            continue
        generated = result[s_idx]
        merged.append(replace(
            section,
            title=generated.title,
            cells=_rewrite_cells(section.cells, generated.cells),
        ))
    return tuple(merged)


def select_strategy(scope: GenerationScope, rng: random.Random | None = None) -> MergeStrategy:
    """Pick the merge function for a generation scope."""
    if scope.kind is ScopeKind.BOARD_REPLACE:
        return partial(whole_document_replace, rng=rng)
    if scope.kind is ScopeKind.BOARD_PRESERVE:
        return zip_merge_preserving
    if scope.kind is ScopeKind.SECTION:
        return partial(subtree_rewrite, section_index=scope.section_index)
    if scope.kind is ScopeKind.CELL:
        return partial(cell_patch, section_index=scope.section_index, cell_index=scope.cell_index)
    raise ValueError(f"No merge strategy for scope {scope.kind!r}")
