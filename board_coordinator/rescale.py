"""
Board Coordinator — Point Rescale

Recomputes every cell's point value from a single scale parameter:
cell i of every section is worth (i + 1) * scale. Nothing else changes.
"""

from __future__ import annotations

from dataclasses import replace

from board_coordinator.document import Sections, current_scale


def rescale(sections: Sections, new_scale: int) -> Sections:
    """Return the board at ``new_scale``; the same tuple if already there."""
    if new_scale <= 0:
        raise ValueError(f"Point scale must be positive, got {new_scale}")
    if sections and sections[0].cells and current_scale(sections) == new_scale:
        return sections
    return tuple(
        replace(section, cells=tuple(
            replace(cell, point_value=(i + 1) * new_scale)
            for i, cell in enumerate(section.cells)
        ))
        for section in sections
    )
