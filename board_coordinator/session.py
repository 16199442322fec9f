"""
Board Coordinator — Board Session

One editing session over one board. Wires the document, generation
controller, mutation gate, retrying requester and content provider
together, and exposes the operator actions:

  regenerate_board / regenerate_section / regenerate_cell   (async)
  rescale, edit_cell, rename_section, mark_answered, void_cell,
  restore_cell, restore_all                                 (gated writes)
  cancel, reset                                             (lock control)

Every piece of mutable state lives on the session instance, so two open
boards never share a lock.

Usage:
    session = BoardSession.from_config(provider=LangChainContentProvider(llm))
    outcome = await session.regenerate_board("1990s Pop Culture", difficulty="hard")
    if outcome.status is OutcomeStatus.APPLIED:
        ...
"""

from __future__ import annotations

import asyncio
import enum
import logging
import random
from dataclasses import dataclass
from typing import Any, Callable

from board_engine.config import get_config_value, load_config
from board_engine.errors import GenerationError
from board_engine.logging import LoggingSink, ObservabilitySink
from board_engine.providers import ContentProvider, PromptContext
from board_engine.retry import RetryingRequester, get_retry_policy
from board_engine.types import GenerationScope
from board_coordinator import edits
from board_coordinator.controller import GenerationController, GenerationState, GenerationToken
from board_coordinator.document import Document, Sections
from board_coordinator.gate import MutationGate
from board_coordinator.merge import select_strategy
from board_coordinator.rescale import rescale

logger = logging.getLogger("board_coordinator.session")


class OutcomeStatus(str, enum.Enum):
    APPLIED = "applied"
    STALE = "stale"         # superseded before it resolved; result discarded
    FAILED = "failed"       # terminal error, board rolled back
    CANCELED = "canceled"   # canceled while in flight; result discarded


@dataclass
class GenerationOutcome:
    status: OutcomeStatus
    token: GenerationToken
    attempts: int = 0
    error: GenerationError | None = None

    @property
    def applied(self) -> bool:
        return self.status is OutcomeStatus.APPLIED


class BoardSession:

    def __init__(
        self,
        document: Document,
        provider: ContentProvider,
        requester: RetryingRequester | None = None,
        sink: ObservabilitySink | None = None,
        rng: random.Random | None = None,
    ):
        self.sink = sink or LoggingSink()
        self.document = document
        self.provider = provider
        self.controller = GenerationController(document, sink=self.sink)
        self.gate = MutationGate(self.controller)
        self.requester = requester or RetryingRequester(sink=self.sink)
        self.rng = rng or random.Random()
        self._canceled: set[GenerationToken] = set()

    @classmethod
    def from_config(
        cls,
        provider: ContentProvider,
        config: dict | None = None,
        sink: ObservabilitySink | None = None,
        connectivity_check: Callable[[], bool] | None = None,
        title: str = "",
    ) -> BoardSession:
        """Build a session with board dimensions and retry policy from config."""
        if config is None:
            config = load_config()
        sink = sink or LoggingSink()
        document = Document.create(
            section_count=int(get_config_value("board.section_count", config, 4)),
            cells_per_section=int(get_config_value("board.cells_per_section", config, 5)),
            point_scale=int(get_config_value("board.point_scale", config, 100)),
            title=title,
        )
        policy = get_retry_policy(get_config_value("llm.provider", config), config=config)
        requester = RetryingRequester(policy, sink=sink, connectivity_check=connectivity_check)
        return cls(document, provider, requester=requester, sink=sink)

    # ── State ──────────────────────────────────────────────────────

    @property
    def sections(self) -> Sections:
        return self.document.sections

    @property
    def state(self) -> GenerationState:
        return self.controller.state

    def is_locked(self) -> bool:
        return self.controller.is_locked()

    # ── Generation ─────────────────────────────────────────────────

    async def regenerate_board(self, topic: str, difficulty: str = "mixed",
                               preserve: bool = True) -> GenerationOutcome:
        """
        Regenerate every section.

        With ``preserve`` (the default) ids, point values and play state
        survive and only titles and text change. Without it the board is
        rebuilt from scratch at the same shape.
        """
        scope = GenerationScope.board(preserve=preserve)
        context = PromptContext(
            topic=topic,
            difficulty=difficulty,
            section_count=self.document.section_count,
            cells_per_section=max(self.document.shape, default=0),
        )
        return await self._generate(scope, context, title=topic)

    async def regenerate_section(self, section_index: int, topic: str | None = None,
                                 difficulty: str = "mixed") -> GenerationOutcome:
        section = self.document.sections[section_index]
        scope = GenerationScope.section(section_index)
        context = PromptContext(
            topic=topic or self.document.title or "General Trivia",
            difficulty=difficulty,
            section_count=1,
            cells_per_section=len(section.cells),
            section_title=section.title,
        )
        return await self._generate(scope, context)

    async def regenerate_cell(self, section_index: int, cell_index: int,
                              topic: str | None = None, difficulty: str = "mixed") -> GenerationOutcome:
        section = self.document.sections[section_index]
        cell = section.cells[cell_index]
        scope = GenerationScope.cell(section_index, cell_index)
        context = PromptContext(
            topic=topic or self.document.title or "General Trivia",
            difficulty=difficulty,
            section_count=1,
            cells_per_section=1,
            section_title=section.title,
            point_value=cell.point_value,
        )
        return await self._generate(scope, context)

    async def _generate(self, scope: GenerationScope, context: PromptContext,
                        title: str | None = None) -> GenerationOutcome:
        token = self.controller.start(scope)
        try:
            result = await self.requester.execute(
                lambda attempt: self.provider.generate(scope, context, attempt),
                step_name=scope.describe(),
                correlation_id=token.id,
            )
        except asyncio.CancelledError:
            # Caller abandoned the request; release the lock and restore
            if self.controller.is_current(token):
                self.controller.cancel(token)
            raise
        except GenerationError as e:
            if self.controller.reject(token, e):
                return GenerationOutcome(OutcomeStatus.FAILED, token, error=e)
            return GenerationOutcome(self._discarded(token), token, error=e)

        if not self.controller.resolve(token):
            return GenerationOutcome(self._discarded(token), token, attempts=result.attempts)

        strategy = select_strategy(scope, rng=self.rng)

        def apply(document: Document) -> None:
            document.replace_sections(strategy(document.sections, result.value))
            if title is not None:
                document.title = title

        try:
            self.gate.write(apply, tag=token, action=f"generation:{scope.describe()}")
        except Exception as e:
            logger.exception("Applying generation result failed: token=%s", token)
            self.controller.reject(token, e)
            raise

        self.controller.complete(token)
        return GenerationOutcome(OutcomeStatus.APPLIED, token, attempts=result.attempts)

    def _discarded(self, token: GenerationToken) -> OutcomeStatus:
        if token in self._canceled:
            self._canceled.discard(token)
            return OutcomeStatus.CANCELED
        return OutcomeStatus.STALE

    def cancel(self) -> bool:
        """Cancel the in-flight generation and roll the board back."""
        token = self.controller.current_token
        if token is None:
            return False
        if self.controller.cancel(token):
            self._canceled.add(token)
            return True
        return False

    def reset(self) -> None:
        """Drop the lock without rolling back. For a request that never returns."""
        self.controller.reset()

    # ── Gated writes ───────────────────────────────────────────────

    def _write(self, action: str, transform: Callable[[Sections], Sections]) -> bool:
        def mutate(document: Document) -> None:
            document.replace_sections(transform(document.sections))
        return self.gate.write(mutate, action=action)

    def rescale(self, new_scale: int) -> bool:
        if new_scale <= 0:
            raise ValueError(f"Point scale must be positive, got {new_scale}")
        from_scale = self.document.scale
        applied = self._write("rescale", lambda sections: rescale(sections, new_scale))
        if applied and from_scale != new_scale:
            logger.info("Points rescaled: %d -> %d", from_scale, new_scale)
            self.sink.report("point_scale_changed", {"from_scale": from_scale, "to_scale": new_scale})
        return applied

    def edit_cell(self, section_index: int, cell_index: int,
                  prompt_text: str | None = None, revealed_text: str | None = None) -> bool:
        return self._write("edit_cell", lambda s: edits.edit_cell(
            s, section_index, cell_index, prompt_text=prompt_text, revealed_text=revealed_text))

    def rename_section(self, section_index: int, title: str) -> bool:
        return self._write("rename_section", lambda s: edits.rename_section(s, section_index, title))

    def mark_answered(self, section_index: int, cell_index: int) -> bool:
        return self._write("mark_answered", lambda s: edits.set_cell_flags(
            s, section_index, cell_index, answered=True))

    def void_cell(self, section_index: int, cell_index: int) -> bool:
        return self._write("void_cell", lambda s: edits.set_cell_flags(
            s, section_index, cell_index, voided=True))

    def restore_cell(self, section_index: int, cell_index: int) -> bool:
        return self._write("restore_cell", lambda s: edits.restore_cell(s, section_index, cell_index))

    def restore_all(self) -> int | None:
        """Restore every played cell. Returns the count, or None if the gate refused."""
        restored: dict[str, Any] = {"count": 0}

        def transform(sections: Sections) -> Sections:
            result, restored["count"] = edits.restore_all(sections)
            return result

        if not self._write("restore_all", transform):
            return None
        if restored["count"]:
            self.sink.report("board_restored_all", {"restored_count": restored["count"]})
        return restored["count"]
