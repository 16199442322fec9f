"""
Board Coordinator — Manual Edits

Pure helpers for the operator's hand edits. BoardSession runs each of
them through the mutation gate without a tag, so they are dropped while a
generation holds the lock.
"""

from __future__ import annotations

from dataclasses import replace

from board_coordinator.document import Sections


def edit_cell(sections: Sections, section_index: int, cell_index: int,
              prompt_text: str | None = None, revealed_text: str | None = None) -> Sections:
    section = sections[section_index]
    cell = section.cells[cell_index]
    cell = replace(
        cell,
        prompt_text=cell.prompt_text if prompt_text is None else prompt_text,
        revealed_text=cell.revealed_text if revealed_text is None else revealed_text,
    )
    return _swap(sections, section_index, section.with_cell(cell_index, cell))


def rename_section(sections: Sections, section_index: int, title: str) -> Sections:
    return _swap(sections, section_index, replace(sections[section_index], title=title))


def set_cell_flags(sections: Sections, section_index: int, cell_index: int, **flags: bool) -> Sections:
    allowed = {"answered", "voided", "bonus_flag"}
    unknown = set(flags) - allowed
    if unknown:
        raise ValueError(f"Unknown cell flags: {sorted(unknown)}")
    section = sections[section_index]
    cell = replace(section.cells[cell_index], **flags)
    return _swap(sections, section_index, section.with_cell(cell_index, cell))


def restore_cell(sections: Sections, section_index: int, cell_index: int) -> Sections:
    """Put a played cell back in play. Returns ``sections`` unchanged if it was never played."""
    cell = sections[section_index].cells[cell_index]
    if not cell.answered and not cell.voided:
        return sections
    return set_cell_flags(sections, section_index, cell_index, answered=False, voided=False)


def restore_all(sections: Sections) -> tuple[Sections, int]:
    """Put every played cell back in play. Returns (board, restored count)."""
    restored = 0
    result = []
    for section in sections:
        cells = []
        for cell in section.cells:
            if cell.answered or cell.voided:
                restored += 1
                cell = replace(cell, answered=False, voided=False)
            cells.append(cell)
        result.append(replace(section, cells=tuple(cells)))
    if not restored:
        return sections, 0
    return tuple(result), restored


def _swap(sections: Sections, index: int, section) -> Sections:
    result = list(sections)
    result[index] = section
    return tuple(result)
