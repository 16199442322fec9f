"""
Board Coordinator — Merge Strategy, Rescale & Edit Tests

Merge strategies are pure, so these tests exercise them directly:
  - whole_document_replace keeps shape, backfills, truncates, one bonus each
  - subtree_rewrite keeps ids and points, missing positions untouched
  - cell_patch touches only text
  - zip_merge_preserving keeps ids/points/flags whatever the provider sends
  - rescale recomputes (i+1)*scale and is identity at the active scale
  - manual edit helpers and restore
"""

import os
import random
import sys
import unittest
from dataclasses import replace

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from board_engine.errors import StructureError
from board_engine.types import GeneratedCell, GeneratedSection, GenerationScope
from board_coordinator.document import (
    PLACEHOLDER_PROMPT,
    Document,
    current_scale,
    shape_of,
)
from board_coordinator.merge import (
    cell_patch,
    select_strategy,
    subtree_rewrite,
    whole_document_replace,
    zip_merge_preserving,
)
from board_coordinator.rescale import rescale
from board_coordinator import edits


def gen_section(title, n, tag=""):
    return GeneratedSection(
        title=title,
        cells=tuple(GeneratedCell(f"{tag}Q{i}", f"{tag}A{i}") for i in range(n)),
    )


def played_board():
    """3x3 board at scale 100 with some play state set."""
    sections = Document.create(3, 3, 100).sections
    sections = edits.set_cell_flags(sections, 0, 0, answered=True)
    sections = edits.set_cell_flags(sections, 1, 2, voided=True)
    sections = edits.set_cell_flags(sections, 2, 1, bonus_flag=True)
    return sections


def ids_and_points(sections):
    return [[(c.id, c.point_value) for c in s.cells] for s in sections]


class TestWholeDocumentReplace(unittest.TestCase):

    def setUp(self):
        self.existing = Document.create(3, 4, 100).sections
        self.rng = random.Random(7)

    def test_exact_shape(self):
        result = [gen_section(f"Cat {i}", 4) for i in range(3)]
        merged = whole_document_replace(self.existing, result, rng=self.rng)
        self.assertEqual(shape_of(merged), shape_of(self.existing))
        self.assertEqual([s.title for s in merged], ["Cat 0", "Cat 1", "Cat 2"])
        self.assertEqual(merged[1].cells[2].prompt_text, "Q2")

    def test_shortfall_backfilled(self):
        result = [gen_section("Only", 2)]
        merged = whole_document_replace(self.existing, result, rng=self.rng)
        self.assertEqual(shape_of(merged), (4, 4, 4))
        self.assertEqual(merged[0].cells[3].prompt_text, PLACEHOLDER_PROMPT)
        self.assertEqual(merged[2].title, "Category 3")

    def test_excess_truncated(self):
        result = [gen_section(f"Cat {i}", 9) for i in range(6)]
        merged = whole_document_replace(self.existing, result, rng=self.rng)
        self.assertEqual(shape_of(merged), (4, 4, 4))

    def test_exactly_one_bonus_per_section(self):
        result = [gen_section(f"Cat {i}", 4) for i in range(3)]
        merged = whole_document_replace(self.existing, result, rng=self.rng)
        for section in merged:
            self.assertEqual(sum(c.bonus_flag for c in section.cells), 1)

    def test_provider_marked_bonus_is_kept(self):
        cells = [GeneratedCell(f"Q{i}", f"A{i}") for i in range(4)]
        cells[2] = GeneratedCell("Q2", "A2", bonus_flag=True)
        result = [GeneratedSection("Marked", tuple(cells))] + [gen_section("x", 4)] * 2
        merged = whole_document_replace(self.existing, result, rng=self.rng)
        self.assertEqual([c.bonus_flag for c in merged[0].cells], [False, False, True, False])

    def test_point_values_unchanged(self):
        result = [gen_section(f"Cat {i}", 4) for i in range(3)]
        merged = whole_document_replace(self.existing, result, rng=self.rng)
        for section in merged:
            self.assertEqual([c.point_value for c in section.cells], [100, 200, 300, 400])

    def test_fresh_play_state(self):
        existing = played_board()
        merged = whole_document_replace(existing, [gen_section("a", 3)] * 3, rng=self.rng)
        self.assertFalse(any(c.answered or c.voided for s in merged for c in s.cells))


class TestSubtreeRewrite(unittest.TestCase):

    def test_preserves_ids_and_points(self):
        existing = played_board()
        merged = subtree_rewrite(existing, list(gen_section("x", 3, "new").cells), section_index=1)
        self.assertEqual(ids_and_points(merged), ids_and_points(existing))
        self.assertEqual([c.prompt_text for c in merged[1].cells], ["newQ0", "newQ1", "newQ2"])
        self.assertTrue(merged[1].cells[2].voided)
        self.assertEqual(merged[0], existing[0])
        self.assertEqual(merged[2], existing[2])

    def test_missing_positions_unchanged(self):
        existing = played_board()
        merged = subtree_rewrite(existing, [GeneratedCell("only", "one")], section_index=0)
        self.assertEqual(merged[0].cells[0].prompt_text, "only")
        self.assertEqual(merged[0].cells[1], existing[0].cells[1])
        self.assertEqual(merged[0].cells[2], existing[0].cells[2])

    def test_extra_cells_ignored(self):
        existing = played_board()
        merged = subtree_rewrite(existing, list(gen_section("x", 8).cells), section_index=2)
        self.assertEqual(shape_of(merged), shape_of(existing))


class TestCellPatch(unittest.TestCase):

    def test_only_text_changes(self):
        existing = played_board()
        merged = cell_patch(existing, GeneratedCell("New Q", "New A"), section_index=2, cell_index=1)
        before = existing[2].cells[1]
        after = merged[2].cells[1]
        self.assertEqual(after.prompt_text, "New Q")
        self.assertEqual(after.revealed_text, "New A")
        self.assertEqual(replace(after, prompt_text=before.prompt_text,
                                 revealed_text=before.revealed_text), before)
        self.assertEqual(merged[0], existing[0])


class TestZipMergePreserving(unittest.TestCase):

    def test_ids_points_flags_preserved(self):
        existing = played_board()
        result = [gen_section(f"T{i}", 3) for i in range(3)]
        merged = zip_merge_preserving(existing, result)
        self.assertEqual(ids_and_points(merged), ids_and_points(existing))
        for old_s, new_s in zip(existing, merged):
            self.assertEqual(old_s.id, new_s.id)
            for old_c, new_c in zip(old_s.cells, new_s.cells):
                self.assertEqual(
                    (old_c.answered, old_c.voided, old_c.bonus_flag),
                    (new_c.answered, new_c.voided, new_c.bonus_flag),
                )
        self.assertEqual([s.title for s in merged], ["T0", "T1", "T2"])

    def test_shorter_result_leaves_rest(self):
        existing = played_board()
        merged = zip_merge_preserving(existing, [gen_section("Only", 1)])
        self.assertEqual(merged[0].title, "Only")
        self.assertEqual(merged[0].cells[1], existing[0].cells[1])
        self.assertEqual(merged[1:], existing[1:])

    def test_provider_bonus_ignored(self):
        existing = played_board()
        cells = tuple(GeneratedCell("q", "a", bonus_flag=True) for _ in range(3))
        merged = zip_merge_preserving(existing, [GeneratedSection("B", cells)] * 3)
        self.assertEqual([c.bonus_flag for c in merged[0].cells], [False, False, False])

    def test_ids_and_points_hold_for_arbitrary_results(self):
        rng = random.Random(3)
        existing = played_board()
        for _ in range(25):
            result = [gen_section(f"R{i}", rng.randint(0, 6)) for i in range(rng.randint(0, 5))]
            merged = zip_merge_preserving(existing, result)
            self.assertEqual(ids_and_points(merged), ids_and_points(existing))


class TestSelectStrategy(unittest.TestCase):

    def test_scope_dispatch(self):
        existing = played_board()
        cell_result = GeneratedCell("c", "d")
        merged = select_strategy(GenerationScope.cell(1, 1))(existing, cell_result)
        self.assertEqual(merged[1].cells[1].prompt_text, "c")

        merged = select_strategy(GenerationScope.section(2))(existing, [cell_result])
        self.assertEqual(merged[2].cells[0].prompt_text, "c")

        merged = select_strategy(GenerationScope.board(preserve=True))(existing, [gen_section("Z", 3)])
        self.assertEqual(merged[0].cells[0].id, existing[0].cells[0].id)

        merged = select_strategy(GenerationScope.board(preserve=False), rng=random.Random(1))(
            existing, [gen_section("Z", 3)])
        self.assertNotEqual(merged[0].cells[0].id, existing[0].cells[0].id)


class TestRescale(unittest.TestCase):

    def test_two_cell_section(self):
        """Rescale {100, 200} to 50 → {50, 100}."""
        sections = Document.create(1, 2, 100).sections
        self.assertEqual([c.point_value for c in sections[0].cells], [100, 200])
        rescaled = rescale(sections, 50)
        self.assertEqual([c.point_value for c in rescaled[0].cells], [50, 100])

    def test_every_position_matches_scale(self):
        sections = played_board()
        for scale in (1, 10, 20, 25, 50, 100, 333):
            rescaled = rescale(sections, scale)
            for section in rescaled:
                for i, cell in enumerate(section.cells):
                    self.assertEqual(cell.point_value, (i + 1) * scale)
            self.assertEqual(shape_of(rescaled), shape_of(sections))
            self.assertEqual(current_scale(rescaled), scale)

    def test_other_fields_untouched(self):
        sections = played_board()
        rescaled = rescale(sections, 25)
        for old_s, new_s in zip(sections, rescaled):
            self.assertEqual(old_s.title, new_s.title)
            for old_c, new_c in zip(old_s.cells, new_s.cells):
                self.assertEqual(replace(new_c, point_value=old_c.point_value), old_c)

    def test_same_scale_is_identity(self):
        sections = played_board()
        self.assertIs(rescale(sections, 100), sections)

    def test_non_positive_scale_rejected(self):
        with self.assertRaises(ValueError):
            rescale(played_board(), 0)


class TestEdits(unittest.TestCase):

    def test_edit_cell_keeps_id(self):
        sections = played_board()
        edited = edits.edit_cell(sections, 0, 1, prompt_text="Hand written")
        self.assertEqual(edited[0].cells[1].prompt_text, "Hand written")
        self.assertEqual(edited[0].cells[1].revealed_text, sections[0].cells[1].revealed_text)
        self.assertEqual(edited[0].cells[1].id, sections[0].cells[1].id)

    def test_unknown_flag_rejected(self):
        with self.assertRaises(ValueError):
            edits.set_cell_flags(played_board(), 0, 0, point_value=5)

    def test_restore_cell(self):
        sections = played_board()
        restored = edits.restore_cell(sections, 0, 0)
        self.assertFalse(restored[0].cells[0].answered)
        self.assertIs(edits.restore_cell(restored, 0, 0), restored)

    def test_restore_all(self):
        restored, count = edits.restore_all(played_board())
        self.assertEqual(count, 2)
        self.assertFalse(any(c.answered or c.voided for s in restored for c in s.cells))
        again, count = edits.restore_all(restored)
        self.assertEqual(count, 0)
        self.assertIs(again, restored)


class TestDocumentShape(unittest.TestCase):

    def test_initial_points(self):
        document = Document.create(2, 3, 20)
        for section in document.sections:
            self.assertEqual([c.point_value for c in section.cells], [20, 40, 60])
        self.assertEqual(document.scale, 20)

    def test_shape_is_locked(self):
        document = Document.create(2, 2, 100)
        with self.assertRaises(StructureError):
            document.replace_sections(document.sections[:1])
        truncated = (replace(document.sections[0], cells=document.sections[0].cells[:1]),
                     document.sections[1])
        with self.assertRaises(StructureError):
            document.replace_sections(truncated)

    def test_find_cell(self):
        document = Document.create(2, 2, 100)
        target = document.cell(1, 0)
        self.assertEqual(document.find_cell(target.id), (1, 0))
        self.assertIsNone(document.find_cell("missing"))


if __name__ == "__main__":
    unittest.main()
