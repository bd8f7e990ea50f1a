"""Central registry for AI prompts and templates."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PromptTemplate:
    key: str
    version: str
    user: str
    system: str | None = None

    def render_user(self, **kwargs) -> str:
        return self.user.format(**kwargs)


PROMPTS: dict[str, PromptTemplate] = {
    "ticket_response": PromptTemplate(
        key="ticket_response",
        version="v1",
        user="""You are a helpful customer service agent. Generate a professional and relevant response for this support ticket.

Context:
{context}

Previous Comments:
{comments}

Requirements:
1. If this is a new ticket with no description, ask for more details about the issue
2. If there are previous comments, acknowledge them and build upon the conversation
3. If the ticket describes a problem:
   - Acknowledge the specific issue
   - Ask clarifying questions if needed
   - Provide clear next steps or solutions
4. Keep the tone professional but friendly
5. Include specific details from the ticket/comments in your response
6. End with a clear call to action or next step

Generate a response that addresses the current state of the ticket:""",
    ),
    "priority_analysis": PromptTemplate(
        key="priority_analysis",
        version="v1",
        user="""You are an expert system analyst. Analyze this ticket's priority.

Title: {title}
Description: {description}

Analyze the priority based on these factors (score each 0-10):
1. Urgency: How time-sensitive is the issue?
2. Impact: How many users/systems are affected?
3. Scope: How complex is the issue?
4. Business Value: What's the business impact?

Priority Levels:
- High: Critical issues needing immediate attention
- Medium: Important issues needing attention soon
- Low: Non-critical issues that can be scheduled

Respond with a JSON object containing:
"priority": either "high", "medium", or "low"
"confidence": number between 0.1 and 1.0
"reasoning": brief explanation string
"factors": object with numeric scores (0-10) for urgency, impact, scope, and businessValue
"details": array of strings explaining each factor

Example format (do not copy the values, analyze the actual ticket):
{{
  "priority": "medium",
  "confidence": 0.8,
  "reasoning": "Example reasoning here",
  "factors": {{
    "urgency": 5,
    "impact": 6,
    "scope": 4,
    "businessValue": 5
  }},
  "details": [
    "Urgency: Example explanation",
    "Impact: Example explanation",
    "Scope: Example explanation",
    "Business Value: Example explanation"
  ]
}}

Ensure your response is a valid JSON object following this exact structure.""",
    ),
    "thread_summary": PromptTemplate(
        key="thread_summary",
        version="v1",
        user="""As an expert analyst, create a comprehensive yet concise summary of this support ticket thread.

Focus on these key elements:
1. Core Issue
   - Initial problem description
   - Technical details provided

2. Current Status
   - Latest developments
   - Any resolution attempts
   - Outstanding blockers

3. Key Information
   - Important technical details
   - Relevant error messages
   - System components involved

4. Next Steps
   - Required actions
   - Pending responses
   - Expected resolutions

Format the summary in clear sections with bullet points where appropriate.
Keep technical accuracy while maintaining readability.

Ticket: {ticket_content}
Thread: {comments}""",
    ),
}


def get_prompt(key: str) -> PromptTemplate:
    """Look up a prompt by key. Raises KeyError for unknown keys."""
    try:
        return PROMPTS[key]
    except KeyError as exc:
        raise KeyError(f"Unknown prompt key: {key}") from exc
