"""Schemas for AI-assist outputs and the evaluation harness."""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from autocrm.db.enums import TicketPriority


class PriorityFactors(BaseModel):
    """Four 0-10 factor scores justifying a priority label."""

    model_config = ConfigDict(populate_by_name=True)

    urgency: float = 5
    impact: float = 5
    scope: float = 5
    business_value: float = Field(default=5, alias="businessValue")


class PriorityAnalysis(BaseModel):
    priority: TicketPriority
    confidence: float
    reasoning: str
    factors: PriorityFactors
    details: list[str] = Field(default_factory=list)


class AIResponse(BaseModel):
    """Drafted agent reply."""

    content: str
    confidence: float
    metadata: dict = Field(default_factory=dict)


# =============================================================================
# Request bodies
# =============================================================================

class GenerateResponseRequest(BaseModel):
    context: str
    comments: list[str] = Field(default_factory=list)


class AnalyzePriorityRequest(BaseModel):
    title: str
    description: str


class SummarizeRequest(BaseModel):
    ticket_content: str
    comments: list[str] = Field(default_factory=list)


class SummaryResponse(BaseModel):
    summary: str


class TicketAIMetadataResponse(BaseModel):
    ticket_id: UUID
    ai_metadata: dict


class EvaluationRunRequest(BaseModel):
    """Optional subset of case names; all cases run when omitted."""

    case_names: list[str] | None = None


# =============================================================================
# Evaluation results
# =============================================================================

class ResponseQuality(BaseModel):
    overall: float
    professionalism: float
    completeness: float
    accuracy: float


class CaseMetrics(BaseModel):
    priority_accuracy: float
    response_quality: ResponseQuality
    response_time_ms: float
    success: bool


class CaseResult(BaseModel):
    name: str
    expected_priority: TicketPriority
    response: AIResponse | None = None
    priority: PriorityAnalysis | None = None
    summary: str | None = None
    metrics: CaseMetrics | None = None
    error: str | None = None


class EvaluationSummary(BaseModel):
    avg_priority_accuracy: float
    avg_response_quality: ResponseQuality
    avg_response_time_ms: float
    min_response_time_ms: float
    max_response_time_ms: float
    success_rate: float
    total_tests: int
    successful_tests: int
    total_cases: int
    coverage: float
    cases_by_priority: dict[str, int]


class EvaluationReport(BaseModel):
    results: list[CaseResult]
    summary: EvaluationSummary | None = None


class EvaluationCaseRead(BaseModel):
    name: str
    title: str
    description: str
    comments: list[str]
    expected_priority: TicketPriority
    expected_factors: PriorityFactors
    response_key_points: list[str]
