"""
Board Coordinator — Mutation Gate

The single choke point for board writes. While a generation is in flight,
only a write tagged with the current token gets through; everything else
is dropped and reported. A dropped write is not an error: the usual cause
is an operator click racing the lock.
"""

from __future__ import annotations

import logging
from typing import Callable

from board_engine.logging import ObservabilitySink
from board_coordinator.controller import GenerationController, GenerationToken
from board_coordinator.document import Document

logger = logging.getLogger("board_coordinator.gate")

Mutator = Callable[[Document], None]


class MutationGate:

    def __init__(self, controller: GenerationController, sink: ObservabilitySink | None = None):
        self.controller = controller
        self.sink = sink or controller.sink
        self.rejected_count = 0

    @property
    def document(self) -> Document:
        return self.controller.document

    def write(self, mutator: Mutator, tag: GenerationToken | None = None, action: str = "") -> bool:
        """
        Run ``mutator`` against the board unless the lock forbids it.

        Returns True if the mutator ran.
        """
        controller = self.controller
        if controller.is_locked() and not controller.is_current(tag):
            self.rejected_count += 1
            logger.info(
                "Mutation rejected while %s: action=%s tag=%s",
                controller.state.value, action or "unnamed", tag,
            )
            self.sink.report("gate_rejected_mutation", {
                "action": action or "unnamed",
                "state": controller.state.value,
                "tag": tag.id if tag else None,
                "current": controller.current_token.id if controller.current_token else None,
            })
            return False

        mutator(self.document)
        return True
