"""
Board Coordinator — Content Providers

A content provider turns (scope, context, attempt) into a provider result:

  whole board  → list[GeneratedSection]
  section      → list[GeneratedCell]
  single cell  → GeneratedCell

LangChainContentProvider works with any langchain BaseChatModel, so the
actual vendor is picked in board_config.yaml, not in code.

Design rules:
  - No vendor-specific imports at module level (lazy imports in create_llm)
  - Retries tighten the output framing via the attempt index
  - Unusable output raises MalformedResponseError; the requester decides
    whether another attempt is allowed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from board_engine.errors import MalformedResponseError
from board_engine.extract import coerce_board, coerce_cell, coerce_section, extract_json
from board_engine.types import GenerationScope, ProviderResult, ScopeKind

logger = logging.getLogger("board_coordinator.providers")


@dataclass(frozen=True)
class PromptContext:
    """What the provider needs to know to write content for a scope."""
    topic: str
    difficulty: str = "mixed"
    section_count: int = 0
    cells_per_section: int = 0
    section_title: str = ""
    point_value: int = 0


class ContentProvider(Protocol):
    async def generate(self, scope: GenerationScope, context: PromptContext, attempt: int) -> ProviderResult: ...


# ═══════════════════════════════════════════════════════════════════
# Prompts
# ═══════════════════════════════════════════════════════════════════

SYSTEM_PROMPT = (
    "You write trivia content for a live game show board. "
    "Facts must be accurate. Answers must be short."
)

_STRICT_FRAMING = (
    "Respond with JSON only. Do not add commentary, markdown fences or "
    "trailing text. The first character must be '{first}'."
)


def build_prompt(scope: GenerationScope, context: PromptContext, attempt: int = 0) -> str:
    if scope.is_board:
        body = (
            f'Generate a trivia game board about "{context.topic}".\n'
            f"Difficulty: {context.difficulty}.\n"
            f"Create exactly {context.section_count} distinct categories.\n"
            f"For each category, create exactly {context.cells_per_section} questions.\n"
            f"The questions should increase in difficulty from 1 to {context.cells_per_section}.\n"
            'Return a JSON array of {"title": str, "cells": [{"promptText": str, "revealedText": str}]}.'
        )
        first = "["
    elif scope.kind is ScopeKind.SECTION:
        body = (
            f'Generate {context.cells_per_section} trivia questions for the category '
            f'"{context.section_title}" within the topic "{context.topic}".\n'
            f"Difficulty: {context.difficulty}.\n"
            "Questions should range from easy to hard.\n"
            'Return a JSON array of {"promptText": str, "revealedText": str}.'
        )
        first = "["
    else:
        body = (
            "Write a single trivia question and answer.\n"
            f"Topic: {context.topic}\n"
            f"Category: {context.section_title}\n"
            f"Difficulty Level: {context.difficulty} (Points: {context.point_value}).\n"
            'Return a JSON object {"promptText": str, "revealedText": str}.'
        )
        first = "{"

    if attempt > 0:
        body += "\n" + _STRICT_FRAMING.format(first=first)
    return body


def parse_result(scope: GenerationScope, text: str) -> ProviderResult:
    data = extract_json(text)
    if scope.is_board:
        return coerce_board(data)
    if scope.kind is ScopeKind.SECTION:
        return coerce_section(data)
    if isinstance(data, list):
        if not data:
            raise MalformedResponseError("Empty list for single-cell generation", raw_response=text)
        data = data[0]
    return coerce_cell(data)


# ═══════════════════════════════════════════════════════════════════
# LangChain Provider
# ═══════════════════════════════════════════════════════════════════

class LangChainContentProvider:
    """Content provider backed by a langchain chat model."""

    def __init__(self, llm: BaseChatModel, system_prompt: str = SYSTEM_PROMPT):
        self.llm = llm
        self.system_prompt = system_prompt

    async def generate(self, scope: GenerationScope, context: PromptContext, attempt: int) -> ProviderResult:
        prompt = build_prompt(scope, context, attempt)
        logger.debug(
            "Provider call (scope=%s, attempt=%d, prompt_chars=%d)",
            scope.describe(), attempt, len(prompt),
        )
        response = await self.llm.ainvoke([
            SystemMessage(content=self.system_prompt),
            HumanMessage(content=prompt),
        ])
        content = response.content
        if isinstance(content, list):
            # Multi-part responses: keep the text parts
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part)
                for part in content
            )
        return parse_result(scope, content)


# ═══════════════════════════════════════════════════════════════════
# LLM factory
# ═══════════════════════════════════════════════════════════════════

def create_llm(config: dict | None = None, model: str | None = None,
               provider: str | None = None) -> BaseChatModel:
    """
    Build a chat model from the ``llm`` config section.

    Vendor packages are imported lazily; only the one actually selected
    needs to be installed.
    """
    if config is None:
        from board_engine.config import load_config
        config = load_config()
    llm_cfg = config.get("llm", {}) or {}
    provider = provider or llm_cfg.get("provider", "google")
    model = model or llm_cfg.get("model", "gemini-2.0-flash")
    temperature = float(llm_cfg.get("temperature", 0.7))

    if provider == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI
        return ChatGoogleGenerativeAI(model=model, temperature=temperature)
    if provider == "openai":
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(model=model, temperature=temperature)
    raise ValueError(f"Unknown LLM provider: {provider!r}")
