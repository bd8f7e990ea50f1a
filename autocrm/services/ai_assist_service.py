"""AI assistance for support agents: reply drafts, priority triage, thread summaries."""

from __future__ import annotations

import json
import logging
import math
import time
from typing import Any

from autocrm.core.config import settings
from autocrm.db.enums import TicketPriority
from autocrm.schemas.ai import AIResponse, PriorityAnalysis, PriorityFactors
from autocrm.services.ai_prompt_registry import get_prompt
from autocrm.services.ai_provider import AIProvider, ChatMessage, get_provider
from autocrm.services.ai_response_validation import sanitize_json_payload
from autocrm.services.ai_tracing import RunTracer, build_tracer, now_ms

logger = logging.getLogger(__name__)

RESPONSE_CONFIDENCE = 0.95
DEFAULT_CONFIDENCE = 0.8
DEFAULT_FACTOR_SCORE = 5
FACTOR_KEYS = ("urgency", "impact", "scope", "businessValue")
SUMMARY_SECTIONS = ("core issue", "current status", "key information", "next steps")


class PriorityParseError(ValueError):
    """Model output could not be turned into a PriorityAnalysis."""


def fallback_priority_analysis() -> PriorityAnalysis:
    return PriorityAnalysis(
        priority=TicketPriority.MEDIUM,
        confidence=0.5,
        reasoning="Failed to analyze priority - using default values",
        factors=PriorityFactors(),
        details=["Analysis failed - using default values"],
    )


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _reject_constant(token: str) -> Any:
    raise PriorityParseError(f"Non-standard JSON constant: {token}")


def decode_priority_payload(cleaned: str) -> PriorityAnalysis:
    """Strict JSON decode (no NaN/Infinity) followed by validation."""
    return coerce_priority_analysis(json.loads(cleaned, parse_constant=_reject_constant))


def coerce_priority_analysis(parsed: Any) -> PriorityAnalysis:
    """
    Validate a decoded priority payload, substituting defaults where allowed.

    Raises:
        PriorityParseError: priority label invalid or factors not an object
    """
    if not isinstance(parsed, dict):
        raise PriorityParseError("Response is not a JSON object")

    priority = TicketPriority.parse(parsed.get("priority"))
    if priority is None:
        raise PriorityParseError("Invalid priority value")

    confidence = parsed.get("confidence")
    if not _is_number(confidence) or confidence < 0 or confidence > 1:
        confidence = DEFAULT_CONFIDENCE

    raw_factors = parsed.get("factors")
    if not isinstance(raw_factors, dict):
        raise PriorityParseError("Missing or invalid factors object")

    factors = {}
    for key in FACTOR_KEYS:
        score = raw_factors.get(key)
        if not _is_number(score) or score < 0 or score > 10:
            score = DEFAULT_FACTOR_SCORE
        factors[key] = score

    details = parsed.get("details")
    if not isinstance(details, list):
        details = ["Analysis completed with default values"]

    reasoning = parsed.get("reasoning")
    if not reasoning or not isinstance(reasoning, str):
        reasoning = "Priority analysis completed"

    return PriorityAnalysis(
        priority=priority,
        confidence=confidence,
        reasoning=reasoning,
        factors=PriorityFactors.model_validate(factors),
        details=[str(item) for item in details],
    )


def summary_metrics(summary: str, ticket_content: str, comments: list[str]) -> dict:
    word_count = len(summary.split())
    source_words = len(ticket_content.split()) + len(" ".join(comments).split())
    has_all_sections = all(section in summary.lower() for section in SUMMARY_SECTIONS)
    return {
        "word_count": word_count,
        "compression_ratio": word_count / source_words if source_words else 0.0,
        "completeness_score": 1 if has_all_sections else 0.5,
        "sections_included": has_all_sections,
    }


class AIAssistant:
    """Prompt-in/text-out helpers over a hosted chat model."""

    def __init__(
        self,
        provider: AIProvider,
        tracer: RunTracer,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ):
        self.provider = provider
        self.tracer = tracer
        self.model = model or provider.default_model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def _complete(self, prompt: str) -> str:
        response = await self.provider.chat(
            [ChatMessage(role="user", content=prompt)],
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        logger.debug(
            f"AI call model={response.model} tokens={response.total_tokens} "
            f"cost_usd={response.estimated_cost_usd}"
        )
        return response.content

    async def _close_run_with_error(self, run_id: str | None, error: Exception) -> None:
        await self.tracer.update_run(run_id, error=str(error), end_time=now_ms())

    # =========================================================================
    # Reply drafting
    # =========================================================================

    async def generate_response(self, context: str, comments: list[str]) -> AIResponse:
        """Draft an agent reply for a ticket. Provider errors propagate."""
        start = now_ms()
        run_id = await self.tracer.create_run(
            "Generate Response", {"context": context, "comments": comments}, start
        )

        numbered = "\n".join(f"{i}. {comment}" for i, comment in enumerate(comments, 1))
        prompt = get_prompt("ticket_response").render_user(
            context=context, comments=numbered
        )
        await self.tracer.update_run(run_id, inputs={"formatted_prompt": prompt})

        started = time.perf_counter()
        try:
            content = await self._complete(prompt)
        except Exception as e:
            logger.error(f"Error generating response: {e}")
            await self._close_run_with_error(run_id, e)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000

        end = now_ms()
        await self.tracer.update_run(
            run_id,
            outputs={
                "content": content,
                "metrics": {
                    "response_time_ms": elapsed_ms,
                    "content_length": len(content),
                },
            },
            end_time=end,
        )
        return AIResponse(
            content=content,
            confidence=RESPONSE_CONFIDENCE,
            metadata={
                "model": self.model,
                "created": end,
                "response_time_ms": elapsed_ms,
            },
        )

    # =========================================================================
    # Priority triage
    # =========================================================================

    async def analyze_ticket_priority(
        self, title: str, description: str
    ) -> PriorityAnalysis:
        """
        Classify a ticket as high/medium/low with factor scores.

        Unparseable or invalid model output yields the fixed fallback analysis;
        provider errors propagate.
        """
        start = now_ms()
        run_id = await self.tracer.create_run(
            "Priority Analysis", {"title": title, "description": description}, start
        )

        prompt = get_prompt("priority_analysis").render_user(
            title=title, description=description
        )
        await self.tracer.update_run(run_id, inputs={"formatted_prompt": prompt})

        try:
            raw = await self._complete(prompt)
        except Exception as e:
            logger.error(f"Error in priority analysis: {e}")
            await self._close_run_with_error(run_id, e)
            raise

        cleaned = sanitize_json_payload(raw)
        try:
            result = decode_priority_payload(cleaned)
        except ValueError as e:
            logger.warning(f"Error parsing priority analysis response: {e}")
            await self.tracer.update_run(
                run_id,
                error=str(e),
                outputs={"raw_response": raw, "cleaned_response": cleaned},
                end_time=now_ms(),
            )
            fallback = fallback_priority_analysis()
            await self.tracer.update_run(
                run_id,
                outputs={
                    "fallback": fallback.model_dump(by_alias=True),
                    "original_error": str(e),
                },
                end_time=now_ms(),
            )
            return fallback

        await self.tracer.update_run(
            run_id,
            outputs={
                "result": result.model_dump(mode="json", by_alias=True),
                "metrics": {
                    "confidence": result.confidence,
                    "factor_scores": result.factors.model_dump(by_alias=True),
                    "response_time_ms": now_ms() - start,
                },
            },
            end_time=now_ms(),
        )
        return result

    # =========================================================================
    # Thread summary
    # =========================================================================

    async def summarize_thread(self, ticket_content: str, comments: list[str]) -> str:
        start = now_ms()
        run_id = await self.tracer.create_run(
            "Summarize Thread",
            {
                "ticketContent": ticket_content,
                "comments": comments,
                "context": {
                    "timestamp": start,
                    "threadLength": len(comments),
                    "contentLength": len(ticket_content) + len("".join(comments)),
                },
            },
            start,
        )

        prompt = get_prompt("thread_summary").render_user(
            ticket_content=ticket_content, comments="\n".join(comments)
        )
        await self.tracer.update_run(run_id, inputs={"formatted_prompt": prompt})

        try:
            summary = await self._complete(prompt)
        except Exception as e:
            logger.error(f"Error summarizing thread: {e}")
            await self._close_run_with_error(run_id, e)
            raise

        end = now_ms()
        metrics = summary_metrics(summary, ticket_content, comments)
        metrics["response_time_ms"] = end - start
        await self.tracer.update_run(
            run_id, outputs={"summary": summary, "metrics": metrics}, end_time=end
        )
        return summary


def build_assistant() -> AIAssistant:
    """Assistant wired from settings."""
    provider = get_provider(settings.AI_PROVIDER, settings.ai_api_key, settings.AI_MODEL)
    return AIAssistant(
        provider,
        build_tracer(),
        model=settings.AI_MODEL,
        temperature=settings.AI_TEMPERATURE,
        max_tokens=settings.AI_MAX_TOKENS,
    )
