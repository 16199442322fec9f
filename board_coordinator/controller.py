"""
Board Coordinator — Generation Controller

Owns the current generation token, the generation state machine and the
rollback snapshot for one document.

    {IDLE, COMPLETE, FAILED, CANCELED} --start--> GENERATING
    GENERATING --resolve(T)--> APPLYING          iff T is current
    APPLYING   --complete(T)--> COMPLETE
    GENERATING/APPLYING --reject(T)--> FAILED    iff T is current, restores
    any        --cancel(T)--> CANCELED           iff T is current, restores

Starting while a generation is active supersedes the old token on the spot.
The superseded request keeps running; its result is simply ignored when it
arrives. Stale resolve/reject/cancel calls are reported no-ops.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass
from typing import Any

from board_engine.logging import NullSink, ObservabilitySink
from board_engine.types import GenerationScope
from board_coordinator.document import Document, Snapshot

logger = logging.getLogger("board_coordinator.controller")


class GenerationState(str, enum.Enum):
    IDLE = "idle"
    GENERATING = "generating"
    APPLYING = "applying"
    COMPLETE = "complete"
    FAILED = "failed"
    CANCELED = "canceled"


_LOCKED_STATES = {GenerationState.GENERATING, GenerationState.APPLYING}


@dataclass(frozen=True)
class GenerationToken:
    """Opaque generation identifier. Only equality matters."""
    id: str
    sequence: int
    scope: GenerationScope

    def __str__(self) -> str:
        return f"{self.id}#{self.sequence}"


class GenerationController:

    def __init__(self, document: Document, sink: ObservabilitySink | None = None):
        self.document = document
        self.sink = sink or NullSink()
        self._state = GenerationState.IDLE
        self._current: GenerationToken | None = None
        self._snapshot: Snapshot | None = None
        self._sequence = 0

    @property
    def state(self) -> GenerationState:
        return self._state

    @property
    def current_token(self) -> GenerationToken | None:
        return self._current

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    def is_locked(self) -> bool:
        return self._state in _LOCKED_STATES

    def is_current(self, token: GenerationToken | None) -> bool:
        return token is not None and token == self._current

    # ── Transitions ────────────────────────────────────────────────

    def start(self, scope: GenerationScope) -> GenerationToken:
        """Mint a token, snapshot the board and lock writes. Always succeeds."""
        superseded = self._current
        self._sequence += 1
        token = GenerationToken(id=uuid.uuid4().hex, sequence=self._sequence, scope=scope)

        self._snapshot = self.document.snapshot()
        self._current = token
        self._state = GenerationState.GENERATING
        logger.info("Generation started: token=%s scope=%s", token, scope.describe())
        fields: dict[str, Any] = {"token": token.id, "sequence": token.sequence, "scope": scope.describe()}
        if superseded is not None:
            fields["superseded"] = superseded.id
        self.sink.report("generation_start", fields)
        return token

    def _stale(self, token: GenerationToken, action: str, **extra: Any) -> None:
        logger.info("Stale %s discarded: token=%s current=%s", action, token, self._current)
        self.sink.report("generation_stale_discarded", {
            "token": token.id,
            "sequence": token.sequence,
            "action": action,
            "current": self._current.id if self._current else None,
            **extra,
        })

    def resolve(self, token: GenerationToken) -> bool:
        """GENERATING → APPLYING if ``token`` is still current."""
        if not self.is_current(token) or self._state is not GenerationState.GENERATING:
            self._stale(token, "resolve")
            return False
        self._state = GenerationState.APPLYING
        return True

    def complete(self, token: GenerationToken) -> bool:
        """APPLYING → COMPLETE. Ends the generation."""
        if not self.is_current(token) or self._state is not GenerationState.APPLYING:
            self._stale(token, "complete")
            return False
        self._state = GenerationState.COMPLETE
        self._end()
        logger.info("Generation complete: token=%s", token)
        self.sink.report("generation_complete", {"token": token.id, "scope": token.scope.describe()})
        return True

    def reject(self, token: GenerationToken, error: BaseException | None = None) -> bool:
        """Roll back and enter FAILED if ``token`` is still current."""
        if not self.is_current(token) or not self.is_locked():
            self._stale(token, "reject", error=str(error)[:200] if error else "")
            return False
        self.rollback()
        self._state = GenerationState.FAILED
        self._end()
        logger.warning("Generation failed, board rolled back: token=%s error=%s", token, error)
        fields: dict[str, Any] = {"token": token.id, "scope": token.scope.describe()}
        if error is not None:
            fields["error"] = str(error)[:200]
            fields["error_code"] = getattr(error, "code", type(error).__name__)
        self.sink.report("generation_failed", fields)
        return True

    def cancel(self, token: GenerationToken) -> bool:
        """Roll back and enter CANCELED if ``token`` is still current."""
        if not self.is_current(token):
            self._stale(token, "cancel")
            return False
        self.rollback()
        self._state = GenerationState.CANCELED
        self._end()
        logger.info("Generation canceled, board rolled back: token=%s", token)
        self.sink.report("generation_canceled", {"token": token.id, "scope": token.scope.describe()})
        return True

    def reset(self) -> None:
        """Manual escape hatch: drop the lock without touching the board."""
        if self._current is not None:
            logger.warning("Controller reset while token=%s was active", self._current)
        self._state = GenerationState.IDLE
        self._end()
        self.sink.report("generation_reset", {})

    # ── Rollback ───────────────────────────────────────────────────

    def rollback(self) -> bool:
        """Restore the snapshot, if any. Idempotent."""
        if self._snapshot is None:
            return False
        self.document.restore(self._snapshot)
        return True

    def _end(self) -> None:
        self._current = None
        self._snapshot = None
