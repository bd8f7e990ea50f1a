"""Offline quality evaluation of the AI assistant against hand-authored cases.

Scores are heuristic: priority accuracy compares labels and factor scores,
response quality counts lexical markers. Every quality sub-score and the
overall are floored at SCORE_FLOOR.
"""

from __future__ import annotations

import logging
import time

from autocrm.db.enums import TicketPriority
from autocrm.schemas.ai import (
    AIResponse,
    CaseMetrics,
    CaseResult,
    EvaluationReport,
    EvaluationSummary,
    PriorityAnalysis,
    ResponseQuality,
)
from autocrm.services.ai_assist_service import AIAssistant
from autocrm.services.evaluation_cases import EVALUATION_CASES, EvaluationCase, get_cases

logger = logging.getLogger(__name__)


# =============================================================================
# Scoring constants
# =============================================================================

PRIORITY_LABEL_WEIGHT = 0.4
PRIORITY_NEAR_MISS_CREDIT = 0.5
PRIORITY_FACTORS_WEIGHT = 0.6
FACTOR_WEIGHTS = {
    "urgency": 0.3,
    "impact": 0.3,
    "scope": 0.2,
    "businessValue": 0.2,
}
FACTOR_MAX_DEVIATION = 3
FACTOR_DEGRADATION = 15

QUALITY_WEIGHTS = {"professionalism": 0.3, "completeness": 0.4, "accuracy": 0.3}
SCORE_FLOOR = 0.3

PROFESSIONAL_MARKERS = (
    "please",
    "thank you",
    "assist",
    "help",
    "understand",
    "apologies",
    "support",
    "resolve",
    "ensure",
    "provide",
)
UNPROFESSIONAL_MARKERS = (
    "sorry about that",
    "my bad",
    "oops",
    "yeah",
    "nope",
    "dunno",
    "whatever",
)
URGENCY_TERMS = ("urgent", "immediate", "priority")
SEVERITY_TERMS = ("critical", "important", "serious")
TECHNICAL_TERMS = (
    "troubleshoot",
    "investigate",
    "resolve",
    "fix",
    "analyze",
    "verify",
    "check",
    "confirm",
    "monitor",
    "update",
)
ACTIONABLE_TERMS = (
    "step",
    "process",
    "follow",
    "guide",
    "procedure",
    "instruction",
    "solution",
    "recommendation",
)
KEYWORD_SUFFIXES = ("", "s", "ing", "ed")
KEY_POINT_MATCH_THRESHOLD = 0.4


def _clamp(score: float) -> float:
    return max(0.0, min(1.0, score))


def _contains_any(content: str, terms: tuple[str, ...]) -> bool:
    return any(term in content for term in terms)


# =============================================================================
# Priority accuracy
# =============================================================================

def evaluate_priority_analysis(
    result: PriorityAnalysis | None, expected: EvaluationCase | None
) -> float:
    if result is None or expected is None:
        return 0.0

    score = 0.0
    if result.priority == expected.expected_priority:
        score += PRIORITY_LABEL_WEIGHT
    else:
        scale = TicketPriority.scale()
        distance = abs(scale.index(result.priority) - scale.index(expected.expected_priority))
        if distance == 1:
            score += PRIORITY_LABEL_WEIGHT * PRIORITY_NEAR_MISS_CREDIT

    actual = result.factors.model_dump(by_alias=True)
    target = expected.expected_factors.as_dict()
    factor_score = 0.0
    for factor, weight in FACTOR_WEIGHTS.items():
        diff = abs(actual[factor] - target[factor])
        if diff <= FACTOR_MAX_DEVIATION:
            factor_score += weight * (1 - diff / FACTOR_DEGRADATION)

    return score + PRIORITY_FACTORS_WEIGHT * factor_score


# =============================================================================
# Response quality
# =============================================================================

def score_professionalism(text: str) -> float:
    content = text.lower()
    score = 0.6
    for marker in PROFESSIONAL_MARKERS:
        if marker in content:
            score += 0.08
    for marker in UNPROFESSIONAL_MARKERS:
        if marker in content:
            score -= 0.15

    if len(content) > 100:
        score += 0.1
    if text[:1].isupper():
        score += 0.05
    if "would" in content or "could" in content:
        score += 0.05
    return _clamp(score)


def score_completeness(text: str, key_points: tuple[str, ...] | list[str]) -> float:
    content = text.lower()
    score = 0.3

    for point in key_points:
        keywords = point.lower().split(" ")
        matched = sum(
            1
            for word in keywords
            if any(word + suffix in content for suffix in KEYWORD_SUFFIXES)
        )
        ratio = matched / len(keywords)
        if ratio >= KEY_POINT_MATCH_THRESHOLD:
            score += (0.7 / len(key_points)) * ratio

    if len(content) > 200:
        score += 0.1
    if "if" in content or "when" in content:
        score += 0.05
    if "first" in content or "then" in content:
        score += 0.05
    return _clamp(score)


def score_accuracy(text: str, expected_priority: TicketPriority) -> float:
    content = text.lower()
    score = 0.4

    if expected_priority == TicketPriority.HIGH:
        if _contains_any(content, URGENCY_TERMS):
            score += 0.2
        if _contains_any(content, SEVERITY_TERMS):
            score += 0.1

    technical = sum(1 for term in TECHNICAL_TERMS if term in content)
    score += min(0.2, technical * 0.05)
    actionable = sum(1 for term in ACTIONABLE_TERMS if term in content)
    score += min(0.2, actionable * 0.05)

    if "team" in content or "support" in content:
        score += 0.05
    if "will" in content or "can" in content:
        score += 0.05
    if "please" in content or "thank you" in content:
        score += 0.05
    return _clamp(score)


def evaluate_response_quality(
    response: AIResponse | None, expected: EvaluationCase
) -> ResponseQuality:
    if response is None:
        return ResponseQuality(
            overall=SCORE_FLOOR,
            professionalism=SCORE_FLOOR,
            completeness=SCORE_FLOOR,
            accuracy=SCORE_FLOOR,
        )

    professionalism = score_professionalism(response.content)
    completeness = score_completeness(response.content, expected.response_key_points)
    accuracy = score_accuracy(response.content, expected.expected_priority)
    overall = (
        professionalism * QUALITY_WEIGHTS["professionalism"]
        + completeness * QUALITY_WEIGHTS["completeness"]
        + accuracy * QUALITY_WEIGHTS["accuracy"]
    )
    return ResponseQuality(
        overall=max(SCORE_FLOOR, overall),
        professionalism=max(SCORE_FLOOR, professionalism),
        completeness=max(SCORE_FLOOR, completeness),
        accuracy=max(SCORE_FLOOR, accuracy),
    )


# =============================================================================
# Runs
# =============================================================================

async def run_case(assistant: AIAssistant, case: EvaluationCase) -> CaseResult:
    """Run all three AI operations for one case. Never raises."""
    context = f"{case.title}\n{case.description}"
    comments = list(case.comments)
    started = time.perf_counter()

    try:
        response = await assistant.generate_response(context, comments)
        priority = await assistant.analyze_ticket_priority(case.title, case.description)
        summary = await assistant.summarize_thread(context, comments)
    except Exception as e:
        logger.exception(f"Evaluation case '{case.name}' failed")
        return CaseResult(
            name=case.name, expected_priority=case.expected_priority, error=str(e)
        )

    elapsed_ms = (time.perf_counter() - started) * 1000
    metrics = CaseMetrics(
        priority_accuracy=evaluate_priority_analysis(priority, case),
        response_quality=evaluate_response_quality(response, case),
        response_time_ms=elapsed_ms,
        success=bool(response.content and priority and summary),
    )
    return CaseResult(
        name=case.name,
        expected_priority=case.expected_priority,
        response=response,
        priority=priority,
        summary=summary,
        metrics=metrics,
    )


def summarize_results(
    results: list[CaseResult], total_cases: int = len(EVALUATION_CASES)
) -> EvaluationSummary | None:
    """Aggregate over the results that produced metrics; None if none did."""
    valid = [r for r in results if r.error is None and r.metrics is not None]
    if not valid:
        return None

    count = len(valid)
    latencies = [r.metrics.response_time_ms for r in valid]

    def mean_quality(field: str) -> float:
        return sum(getattr(r.metrics.response_quality, field) for r in valid) / count

    by_priority = {priority.value: 0 for priority in TicketPriority.scale()}
    for result in results:
        by_priority[result.expected_priority.value] += 1

    return EvaluationSummary(
        avg_priority_accuracy=sum(r.metrics.priority_accuracy for r in valid) / count,
        avg_response_quality=ResponseQuality(
            overall=mean_quality("overall"),
            professionalism=mean_quality("professionalism"),
            completeness=mean_quality("completeness"),
            accuracy=mean_quality("accuracy"),
        ),
        avg_response_time_ms=sum(latencies) / count,
        min_response_time_ms=min(latencies),
        max_response_time_ms=max(latencies),
        success_rate=count / len(results),
        total_tests=len(results),
        successful_tests=count,
        total_cases=total_cases,
        coverage=len(results) / total_cases if total_cases else 0.0,
        cases_by_priority=by_priority,
    )


async def run_evaluation(
    assistant: AIAssistant,
    cases: list[EvaluationCase] | None = None,
    names: list[str] | None = None,
) -> EvaluationReport:
    """Run cases sequentially; a failing case is recorded and the run continues."""
    selected = cases if cases is not None else get_cases(names)
    results: list[CaseResult] = []
    for case in selected:
        logger.info(f"Running evaluation case '{case.name}'")
        results.append(await run_case(assistant, case))

    report = EvaluationReport(results=results, summary=summarize_results(results))
    if report.summary:
        logger.info(
            f"Evaluation finished: {report.summary.successful_tests}/"
            f"{report.summary.total_tests} succeeded, "
            f"avg priority accuracy {report.summary.avg_priority_accuracy:.2f}"
        )
    else:
        logger.warning("Evaluation finished with no successful cases")
    return report
