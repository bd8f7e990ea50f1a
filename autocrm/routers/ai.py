"""AI Assistant API router.

Stateless assist calls, ticket-bound summary/priority analysis, and the
evaluation harness.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from autocrm.core.deps import (
    get_ai_assistant,
    get_current_session,
    get_db,
    require_csrf_header,
    require_roles,
)
from autocrm.core.structured_logging import build_log_context
from autocrm.db.enums import TicketEventType, UserRole
from autocrm.schemas.ai import (
    AIResponse,
    AnalyzePriorityRequest,
    EvaluationCaseRead,
    EvaluationReport,
    EvaluationRunRequest,
    GenerateResponseRequest,
    PriorityAnalysis,
    PriorityFactors,
    SummarizeRequest,
    SummaryResponse,
    TicketAIMetadataResponse,
)
from autocrm.schemas.auth import UserSession
from autocrm.services import comment_service, evaluation_service, ticket_service
from autocrm.services.ai_assist_service import AIAssistant
from autocrm.services.evaluation_cases import EVALUATION_CASES
from autocrm.services.ticket_events import publish_ticket_change, ticket_change_args
from autocrm.utils.sanitize import html_to_text

router = APIRouter(tags=["AI"])
logger = logging.getLogger(__name__)

STAFF_ROLES = [UserRole.AGENT, UserRole.ADMIN]


def _upstream_failure(action: str) -> HTTPException:
    return HTTPException(status_code=502, detail=f"Failed to {action}. Please try again.")


def _ticket_thread(db: Session, ticket) -> tuple[str, list[str]]:
    content = f"{ticket.title}\n{html_to_text(ticket.description)}"
    comments = [html_to_text(c.content) for c in comment_service.list_comments(db, ticket.id)]
    return content, comments


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================================
# Stateless assist
# ============================================================================


@router.post(
    "/ai/generate-response",
    response_model=AIResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def generate_response(
    data: GenerateResponseRequest,
    session: UserSession = Depends(require_roles(STAFF_ROLES)),
    assistant: AIAssistant = Depends(get_ai_assistant),
):
    try:
        return await assistant.generate_response(data.context, data.comments)
    except Exception:
        logger.exception("AI response generation failed")
        raise _upstream_failure("generate AI response")


@router.post(
    "/ai/analyze-priority",
    response_model=PriorityAnalysis,
    response_model_by_alias=True,
    dependencies=[Depends(require_csrf_header)],
)
async def analyze_priority(
    data: AnalyzePriorityRequest,
    session: UserSession = Depends(require_roles(STAFF_ROLES)),
    assistant: AIAssistant = Depends(get_ai_assistant),
):
    try:
        return await assistant.analyze_ticket_priority(data.title, data.description)
    except Exception:
        logger.exception("AI priority analysis failed")
        raise _upstream_failure("analyze priority")


@router.post(
    "/ai/summarize",
    response_model=SummaryResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def summarize(
    data: SummarizeRequest,
    session: UserSession = Depends(require_roles(STAFF_ROLES)),
    assistant: AIAssistant = Depends(get_ai_assistant),
):
    try:
        summary = await assistant.summarize_thread(data.ticket_content, data.comments)
    except Exception:
        logger.exception("AI thread summary failed")
        raise _upstream_failure("summarize thread")
    return SummaryResponse(summary=summary)


# ============================================================================
# Ticket-bound analysis (results merged into ticket.ai_metadata, each stamped
# with its own lastUpdated)
# ============================================================================


@router.post(
    "/tickets/{ticket_id}/ai/summary",
    response_model=TicketAIMetadataResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def summarize_ticket(
    ticket_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(STAFF_ROLES)),
    assistant: AIAssistant = Depends(get_ai_assistant),
):
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    content, comments = _ticket_thread(db, ticket)
    try:
        summary = await assistant.summarize_thread(content, comments)
    except Exception:
        logger.exception(
            "AI summary failed",
            extra=build_log_context(
                user_id=session.user_id, company_id=session.company_id, ticket_id=ticket_id
            ),
        )
        raise _upstream_failure("summarize thread")

    metadata = ticket_service.merge_ai_metadata(
        db, ticket, {"summary": {"content": summary, "lastUpdated": _now_iso()}}
    )
    background_tasks.add_task(
        publish_ticket_change, *ticket_change_args(TicketEventType.UPDATE, ticket)
    )
    return TicketAIMetadataResponse(ticket_id=ticket.id, ai_metadata=metadata)


@router.post(
    "/tickets/{ticket_id}/ai/priority",
    response_model=TicketAIMetadataResponse,
    dependencies=[Depends(require_csrf_header)],
)
async def analyze_ticket_priority(
    ticket_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles(STAFF_ROLES)),
    assistant: AIAssistant = Depends(get_ai_assistant),
):
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    try:
        analysis = await assistant.analyze_ticket_priority(
            ticket.title, html_to_text(ticket.description)
        )
    except Exception:
        logger.exception(
            "AI priority analysis failed",
            extra=build_log_context(
                user_id=session.user_id, company_id=session.company_id, ticket_id=ticket_id
            ),
        )
        raise _upstream_failure("analyze priority")

    metadata = ticket_service.merge_ai_metadata(
        db,
        ticket,
        {
            "priority": {
                **analysis.model_dump(mode="json", by_alias=True),
                "lastUpdated": _now_iso(),
            }
        },
    )
    background_tasks.add_task(
        publish_ticket_change, *ticket_change_args(TicketEventType.UPDATE, ticket)
    )
    return TicketAIMetadataResponse(ticket_id=ticket.id, ai_metadata=metadata)


# ============================================================================
# Evaluation (Admin Only)
# ============================================================================


@router.get("/ai/evaluation/cases", response_model=list[EvaluationCaseRead])
def list_evaluation_cases(
    session: UserSession = Depends(get_current_session),
):
    return [
        EvaluationCaseRead(
            name=case.name,
            title=case.title,
            description=case.description,
            comments=list(case.comments),
            expected_priority=case.expected_priority,
            expected_factors=PriorityFactors.model_validate(case.expected_factors.as_dict()),
            response_key_points=list(case.response_key_points),
        )
        for case in EVALUATION_CASES
    ]


@router.post(
    "/ai/evaluation/run",
    response_model=EvaluationReport,
    dependencies=[Depends(require_csrf_header)],
)
async def run_evaluation(
    data: EvaluationRunRequest | None = None,
    session: UserSession = Depends(require_roles([UserRole.ADMIN])),
    assistant: AIAssistant = Depends(get_ai_assistant),
):
    """Run the evaluation cases sequentially. Individual case failures are reported, not raised."""
    try:
        return await evaluation_service.run_evaluation(
            assistant, names=data.case_names if data else None
        )
    except KeyError as e:
        raise HTTPException(status_code=400, detail=str(e.args[0]))
