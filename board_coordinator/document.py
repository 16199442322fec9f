"""
Board Coordinator — Document Model

A board is an ordered tuple of sections, each an ordered tuple of cells.
Cells and sections are frozen; every edit produces a new value with the
same id. The Document holds the current tuple and refuses any replacement
that would change the section count or cells-per-section fixed at
creation.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field, replace

from board_engine.errors import StructureError

DEFAULT_SCALE = 100
PLACEHOLDER_PROMPT = "Placeholder Question"
PLACEHOLDER_REVEALED = "Placeholder Answer"


def generate_id() -> str:
    return uuid.uuid4().hex[:9]


@dataclass(frozen=True)
class Cell:
    id: str
    prompt_text: str = ""
    revealed_text: str = ""
    point_value: int = 0
    answered: bool = False
    voided: bool = False
    bonus_flag: bool = False

    def with_text(self, prompt_text: str, revealed_text: str) -> Cell:
        return replace(self, prompt_text=prompt_text, revealed_text=revealed_text)


@dataclass(frozen=True)
class Section:
    id: str
    title: str
    cells: tuple[Cell, ...] = field(default_factory=tuple)

    def with_cell(self, index: int, cell: Cell) -> Section:
        cells = list(self.cells)
        cells[index] = cell
        return replace(self, cells=tuple(cells))


Sections = tuple[Section, ...]


def placeholder_cell(index: int, scale: int) -> Cell:
    return Cell(
        id=generate_id(),
        prompt_text=PLACEHOLDER_PROMPT,
        revealed_text=PLACEHOLDER_REVEALED,
        point_value=(index + 1) * scale,
    )


def placeholder_section(index: int, cells_per_section: int, scale: int) -> Section:
    return Section(
        id=generate_id(),
        title=f"Category {index + 1}",
        cells=tuple(placeholder_cell(i, scale) for i in range(cells_per_section)),
    )


def current_scale(sections: Sections) -> int:
    """The scale implied by the first cell of the first section."""
    if not sections or not sections[0].cells:
        return DEFAULT_SCALE
    return sections[0].cells[0].point_value or DEFAULT_SCALE


def shape_of(sections: Sections) -> tuple[int, ...]:
    return tuple(len(s.cells) for s in sections)


class Document:
    """
    The shared mutable board.

    Reads are always safe. Writes go through MutationGate, which calls
    replace_sections(); the controller's rollback uses restore().
    """

    def __init__(self, sections: Sections, title: str = ""):
        self._sections: Sections = tuple(sections)
        self.title = title
        self._shape = shape_of(self._sections)

    @classmethod
    def create(cls, section_count: int, cells_per_section: int,
               point_scale: int = DEFAULT_SCALE, title: str = "") -> Document:
        if section_count < 0 or cells_per_section < 0:
            raise ValueError("Board dimensions must be non-negative")
        if point_scale <= 0:
            raise ValueError(f"Point scale must be positive, got {point_scale}")
        return cls(
            tuple(placeholder_section(i, cells_per_section, point_scale)
                  for i in range(section_count)),
            title=title,
        )

    @property
    def sections(self) -> Sections:
        return self._sections

    @property
    def section_count(self) -> int:
        return len(self._shape)

    @property
    def shape(self) -> tuple[int, ...]:
        return self._shape

    @property
    def scale(self) -> int:
        return current_scale(self._sections)

    def cell(self, section_index: int, cell_index: int) -> Cell:
        return self._sections[section_index].cells[cell_index]

    def find_cell(self, cell_id: str) -> tuple[int, int] | None:
        for s_idx, section in enumerate(self._sections):
            for c_idx, cell in enumerate(section.cells):
                if cell.id == cell_id:
                    return s_idx, c_idx
        return None

    def replace_sections(self, sections: Sections) -> None:
        sections = tuple(sections)
        if shape_of(sections) != self._shape:
            raise StructureError(
                f"Board shape is locked at {self._shape}; refusing {shape_of(sections)}"
            )
        self._sections = sections

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "sections": [asdict(s) for s in self._sections],
        }

    def snapshot(self) -> Snapshot:
        return Snapshot(sections=self._sections, title=self.title)

    def restore(self, snapshot: Snapshot) -> None:
        self._sections = snapshot.sections
        self.title = snapshot.title


@dataclass(frozen=True)
class Snapshot:
    """Immutable copy of the board taken at generation start."""
    sections: Sections
    title: str = ""
