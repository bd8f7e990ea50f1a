import json

import pytest

from autocrm.db.enums import TicketPriority
from autocrm.services.ai_assist_service import (
    coerce_priority_analysis,
    fallback_priority_analysis,
    summary_metrics,
)


def _priority_payload(**overrides) -> str:
    payload = {
        "priority": "low",
        "confidence": 0.7,
        "reasoning": "Cosmetic issue",
        "factors": {"urgency": 2, "impact": 3, "scope": 2, "businessValue": 2},
        "details": ["Urgency: low"],
    }
    payload.update(overrides)
    return json.dumps(payload)


# =============================================================================
# Priority analysis
# =============================================================================

@pytest.mark.asyncio
async def test_priority_analysis_parses_model_json(make_assistant):
    assistant, _ = make_assistant(lambda prompt: _priority_payload())

    result = await assistant.analyze_ticket_priority("Typo on page", "Footer typo")

    assert result.priority == TicketPriority.LOW
    assert result.confidence == 0.7
    assert result.factors.business_value == 2
    assert result.details == ["Urgency: low"]


@pytest.mark.asyncio
async def test_priority_analysis_strips_surrounding_text(make_assistant):
    reply = "Here is the analysis:\n```json\n" + _priority_payload() + "\n```"
    assistant, _ = make_assistant(lambda prompt: reply)

    result = await assistant.analyze_ticket_priority("t", "d")

    assert result.priority == TicketPriority.LOW


@pytest.mark.asyncio
async def test_priority_analysis_unparseable_returns_fallback(make_assistant, recording_tracer):
    assistant, _ = make_assistant(lambda prompt: "not json at all", tracer=recording_tracer)

    result = await assistant.analyze_ticket_priority("t", "d")

    assert result == fallback_priority_analysis()
    assert result.priority == TicketPriority.MEDIUM
    assert result.confidence == 0.5
    assert result.reasoning == "Failed to analyze priority - using default values"
    assert result.factors.model_dump(by_alias=True) == {
        "urgency": 5,
        "impact": 5,
        "scope": 5,
        "businessValue": 5,
    }
    assert result.details == ["Analysis failed - using default values"]
    assert any("error" in update for update in recording_tracer.updates)


@pytest.mark.asyncio
async def test_priority_analysis_invalid_label_returns_fallback(make_assistant):
    assistant, _ = make_assistant(lambda prompt: _priority_payload(priority="urgent"))

    result = await assistant.analyze_ticket_priority("t", "d")

    assert result == fallback_priority_analysis()


@pytest.mark.asyncio
async def test_priority_analysis_missing_factors_returns_fallback(make_assistant):
    assistant, _ = make_assistant(lambda prompt: _priority_payload(factors="high"))

    result = await assistant.analyze_ticket_priority("t", "d")

    assert result == fallback_priority_analysis()


def test_coerce_out_of_range_factor_defaults_to_five():
    parsed = json.loads(
        _priority_payload(factors={"urgency": 15, "impact": 3, "scope": -1, "businessValue": "9"})
    )

    result = coerce_priority_analysis(parsed)

    assert result.factors.urgency == 5
    assert result.factors.impact == 3
    assert result.factors.scope == 5
    assert result.factors.business_value == 5


def test_coerce_priority_is_case_insensitive():
    result = coerce_priority_analysis(json.loads(_priority_payload(priority="HIGH")))
    assert result.priority == TicketPriority.HIGH


def test_coerce_invalid_confidence_defaults():
    assert coerce_priority_analysis(json.loads(_priority_payload(confidence=3))).confidence == 0.8
    assert coerce_priority_analysis(json.loads(_priority_payload(confidence=True))).confidence == 0.8


def test_coerce_missing_details_and_reasoning_get_defaults():
    parsed = json.loads(_priority_payload())
    del parsed["details"]
    parsed["reasoning"] = ""

    result = coerce_priority_analysis(parsed)

    assert result.details == ["Analysis completed with default values"]
    assert result.reasoning == "Priority analysis completed"


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
async def test_priority_analysis_non_finite_json_returns_fallback(make_assistant, token):
    reply = (
        f'{{"priority": "high", "confidence": {token}, "reasoning": "r", '
        f'"factors": {{"urgency": {token}, "impact": 8, "scope": 6, "businessValue": 7}}, '
        '"details": []}'
    )
    assistant, _ = make_assistant(lambda prompt: reply)

    result = await assistant.analyze_ticket_priority("t", "d")

    assert result == fallback_priority_analysis()


def test_coerce_non_finite_numbers_get_defaults():
    parsed = json.loads(_priority_payload())
    parsed["confidence"] = float("nan")
    parsed["factors"]["urgency"] = float("nan")
    parsed["factors"]["impact"] = float("inf")

    result = coerce_priority_analysis(parsed)

    assert result.confidence == 0.8
    assert result.factors.urgency == 5
    assert result.factors.impact == 5
    assert result.factors.scope == 2


# =============================================================================
# Response drafting & summaries
# =============================================================================

@pytest.mark.asyncio
async def test_generate_response_numbers_comments(make_assistant):
    assistant, provider = make_assistant(lambda prompt: "We are on it.")

    response = await assistant.generate_response(
        "Login broken", ["First comment", "Second comment"]
    )

    assert response.content == "We are on it."
    assert response.confidence == 0.95
    assert response.metadata["model"] == "stub-model"
    assert "response_time_ms" in response.metadata
    assert "1. First comment\n2. Second comment" in provider.prompts[0]
    assert "Login broken" in provider.prompts[0]


@pytest.mark.asyncio
async def test_provider_error_propagates(make_assistant, recording_tracer):
    def explode(prompt: str) -> str:
        raise RuntimeError("upstream down")

    assistant, _ = make_assistant(explode, tracer=recording_tracer)

    with pytest.raises(RuntimeError, match="upstream down"):
        await assistant.generate_response("ctx", [])

    assert recording_tracer.updates[-1]["error"] == "upstream down"


@pytest.mark.asyncio
async def test_priority_provider_error_is_not_masked_by_fallback(make_assistant):
    def explode(prompt: str) -> str:
        raise RuntimeError("timeout")

    assistant, _ = make_assistant(explode)

    with pytest.raises(RuntimeError):
        await assistant.analyze_ticket_priority("t", "d")


@pytest.mark.asyncio
async def test_summarize_thread_returns_model_text(make_assistant, recording_tracer):
    assistant, provider = make_assistant(lambda prompt: "Core Issue: x", tracer=recording_tracer)

    summary = await assistant.summarize_thread("Ticket body", ["a", "b"])

    assert summary == "Core Issue: x"
    assert "Ticket: Ticket body" in provider.prompts[0]
    assert "Thread: a\nb" in provider.prompts[0]
    assert recording_tracer.created[0][0] == "Summarize Thread"


@pytest.mark.asyncio
async def test_untraced_calls_still_complete(make_assistant):
    class NoRunTracer:
        async def create_run(self, name, inputs, start_time):
            return None

        async def update_run(self, run_id, **fields):
            return None

    assistant, _ = make_assistant(lambda prompt: "ok", tracer=NoRunTracer())

    assert (await assistant.generate_response("ctx", [])).content == "ok"


def test_summary_metrics_detects_sections():
    summary = "Core issue: a. Current status: b. Key information: c. Next steps: d."

    metrics = summary_metrics(summary, "one two three four", ["five six"])

    assert metrics["sections_included"] is True
    assert metrics["completeness_score"] == 1
    assert metrics["word_count"] == len(summary.split())
    assert metrics["compression_ratio"] == pytest.approx(len(summary.split()) / 6)
