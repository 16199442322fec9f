"""
Board Coordinator

Generation coordination for grid-shaped trivia boards: one authoritative
generation at a time, stale results discarded, failed generations rolled
back, and every board write routed through a single gate.
"""

from board_coordinator.document import Cell, Section, Document, Snapshot, current_scale
from board_coordinator.controller import GenerationController, GenerationState, GenerationToken
from board_coordinator.gate import MutationGate
from board_coordinator.merge import (
    whole_document_replace, subtree_rewrite, cell_patch, zip_merge_preserving, select_strategy,
)
from board_coordinator.rescale import rescale
from board_coordinator.session import BoardSession, GenerationOutcome, OutcomeStatus
