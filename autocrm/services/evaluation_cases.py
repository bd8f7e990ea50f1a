"""Hand-authored evaluation cases for the AI assistant.

Each case carries a ticket (title, description, prior comments) and the
expected triage: priority label, 0-10 factor scores and the key points a good
reply should cover.
"""

from dataclasses import dataclass

from autocrm.db.enums import TicketPriority


@dataclass(frozen=True)
class ExpectedFactors:
    urgency: float
    impact: float
    scope: float
    business_value: float

    def as_dict(self) -> dict[str, float]:
        return {
            "urgency": self.urgency,
            "impact": self.impact,
            "scope": self.scope,
            "businessValue": self.business_value,
        }


@dataclass(frozen=True)
class EvaluationCase:
    name: str
    title: str
    description: str
    comments: tuple[str, ...]
    expected_priority: TicketPriority
    expected_factors: ExpectedFactors
    response_key_points: tuple[str, ...]


EVALUATION_CASES: tuple[EvaluationCase, ...] = (
    EvaluationCase(
        name="Urgent Account Access",
        title="Cannot access my account",
        description="I've been trying to log in for the past hour but keep getting an error message. This is urgent as I need to access important documents for a meeting in 2 hours.",
        comments=(
            "Have you tried clearing your browser cache?",
            "Yes, I tried that but still getting the same error.",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=9,
            impact=7,
            scope=5,
            business_value=8,
        ),
        response_key_points=(
            "Acknowledge urgency",
            "Provide immediate troubleshooting steps",
            "Offer alternative access method",
            "Escalation path if needed",
        ),
    ),
    EvaluationCase(
        name="Feature Request",
        title="Request for dark mode",
        description="Would be great to have a dark mode option for better visibility during night time use. Not urgent but would improve user experience.",
        comments=(
            "Thanks for the suggestion! We'll consider this for future updates.",
            "That would be great, my team would really appreciate this feature.",
        ),
        expected_priority=TicketPriority.LOW,
        expected_factors=ExpectedFactors(
            urgency=2,
            impact=5,
            scope=4,
            business_value=3,
        ),
        response_key_points=(
            "Acknowledge request value",
            "Set realistic expectations",
            "Explain feature request process",
            "Timeline indication",
        ),
    ),
    EvaluationCase(
        name="System Performance Issue",
        title="System extremely slow",
        description="The application has been running very slowly for the past 30 minutes. Multiple users in our department are affected and it's impacting our work.",
        comments=(
            "Is this affecting all modules or specific ones?",
            "All modules are slow, especially the reporting section.",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=8,
            impact=9,
            scope=7,
            business_value=8,
        ),
        response_key_points=(
            "Acknowledge widespread impact",
            "Immediate investigation steps",
            "Temporary workarounds if available",
            "Regular status updates",
        ),
    ),
    EvaluationCase(
        name="Data Export Bug",
        title="CSV export missing columns",
        description="When exporting customer data to CSV, some columns are missing. This is affecting our monthly reporting process.",
        comments=(
            "Which columns are missing?",
            "The email and phone number columns are not showing up in the export.",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=6,
            impact=6,
            scope=4,
            business_value=7,
        ),
        response_key_points=(
            "Confirm specific missing fields",
            "Provide temporary workaround",
            "Timeline for fix",
            "Data integrity assurance",
        ),
    ),
    EvaluationCase(
        name="UI Enhancement",
        title="Improve button visibility",
        description="The save button is hard to find on the mobile interface. Could we make it more prominent?",
        comments=(
            "Are other users reporting the same issue?",
            "Yes, our mobile users often miss it.",
        ),
        expected_priority=TicketPriority.LOW,
        expected_factors=ExpectedFactors(
            urgency=3,
            impact=5,
            scope=3,
            business_value=4,
        ),
        response_key_points=(
            "Acknowledge UX feedback",
            "Explain design consideration process",
            "Timeline for UI updates",
            "Temporary guidance",
        ),
    ),
    EvaluationCase(
        name="Integration Error",
        title="API integration failing",
        description="The integration with the payment gateway is failing intermittently. Some transactions are not being processed.",
        comments=(
            "When did this start happening?",
            "Started about an hour ago, affecting about 20% of transactions.",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=9,
            impact=8,
            scope=6,
            business_value=9,
        ),
        response_key_points=(
            "Immediate investigation",
            "Payment system status",
            "Transaction reconciliation plan",
            "Communication strategy",
        ),
    ),
    EvaluationCase(
        name="Documentation Update",
        title="Outdated API docs",
        description="The API documentation doesn't reflect recent changes to the endpoint parameters.",
        comments=(
            "Which endpoints are affected?",
            "The user management endpoints have new required fields not shown in docs.",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=5,
            impact=6,
            scope=4,
            business_value=5,
        ),
        response_key_points=(
            "Documentation review plan",
            "Temporary guidance",
            "Update timeline",
            "Change notification process",
        ),
    ),
    EvaluationCase(
        name="Security Concern",
        title="Suspicious login attempts",
        description="We're seeing multiple failed login attempts from unknown IP addresses on our admin account.",
        comments=(
            "How many attempts have you noticed?",
            "About 50 attempts in the last hour from different IPs.",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=10,
            impact=8,
            scope=7,
            business_value=10,
        ),
        response_key_points=(
            "Immediate security measures",
            "Account protection steps",
            "Investigation process",
            "Security recommendations",
        ),
    ),
    EvaluationCase(
        name="Password Reset Issue",
        title="Cannot reset password",
        description="The password reset link in my email is not working. I need to access my account for an important client meeting.",
        comments=(
            "When did you request the reset link?",
            "About 30 minutes ago, and I've tried multiple times.",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=8,
            impact=6,
            scope=4,
            business_value=7,
        ),
        response_key_points=(
            "Acknowledge time sensitivity",
            "Verify reset link status",
            "Alternative reset method",
            "Account security check",
        ),
    ),
    EvaluationCase(
        name="Report Generation Error",
        title="Monthly reports not generating",
        description="The automated report generation system is failing. We need these reports for our monthly review meeting tomorrow.",
        comments=(
            "Are you getting any specific error messages?",
            "Yes, it says 'Data source connection failed'",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=8,
            impact=7,
            scope=6,
            business_value=8,
        ),
        response_key_points=(
            "Acknowledge deadline",
            "Technical investigation steps",
            "Manual report option",
            "Prevention measures",
        ),
    ),
    EvaluationCase(
        name="Mobile App Crash",
        title="App keeps crashing on startup",
        description="After the latest update, the mobile app crashes immediately upon opening. This is happening to multiple users.",
        comments=(
            "Which app version are you using?",
            "Version 2.1.0, just updated today",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=9,
            impact=8,
            scope=7,
            business_value=8,
        ),
        response_key_points=(
            "Acknowledge widespread issue",
            "Version rollback option",
            "Crash log analysis",
            "User communication plan",
        ),
    ),
    EvaluationCase(
        name="Email Notification Delay",
        title="Delayed email notifications",
        description="Email notifications for new messages are being delayed by about 30 minutes. This is affecting our response time to customers.",
        comments=(
            "Is this happening for all types of notifications?",
            "Yes, all email notifications are delayed",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=6,
            impact=7,
            scope=5,
            business_value=6,
        ),
        response_key_points=(
            "Acknowledge impact on service",
            "Email system diagnosis",
            "Alternative notification method",
            "Monitoring setup",
        ),
    ),
    EvaluationCase(
        name="Data Sync Issue",
        title="Data not syncing between devices",
        description="Changes made on the web app are not reflecting on the mobile app. This is causing confusion among team members.",
        comments=(
            "How long has this been happening?",
            "Started noticing it this morning",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=6,
            impact=6,
            scope=5,
            business_value=6,
        ),
        response_key_points=(
            "Sync mechanism check",
            "Manual sync option",
            "Data consistency verification",
            "Team coordination advice",
        ),
    ),
    EvaluationCase(
        name="Search Function Enhancement",
        title="Improve search functionality",
        description="The search function doesn't support filtering by date range. This would be helpful for finding historical records.",
        comments=(
            "How are you currently handling this?",
            "We have to manually scroll through results to find the right dates",
        ),
        expected_priority=TicketPriority.LOW,
        expected_factors=ExpectedFactors(
            urgency=3,
            impact=5,
            scope=4,
            business_value=5,
        ),
        response_key_points=(
            "Feature benefit acknowledgment",
            "Current workaround explanation",
            "Enhancement roadmap",
            "Alternative search strategies",
        ),
    ),
    EvaluationCase(
        name="SSL Certificate Expiry",
        title="SSL Certificate Warning",
        description="Users are reporting security warnings when accessing our site. Appears to be related to SSL certificate expiration.",
        comments=(
            "When does the certificate expire?",
            "According to the warning, it expires in 48 hours",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=9,
            impact=9,
            scope=7,
            business_value=9,
        ),
        response_key_points=(
            "Security impact acknowledgment",
            "Immediate renewal process",
            "User communication strategy",
            "Future monitoring plan",
        ),
    ),
    EvaluationCase(
        name="Print Layout Bug",
        title="Reports printing incorrectly",
        description="When printing reports, some tables are being cut off at the edges. This is affecting our ability to share physical copies.",
        comments=(
            "Have you tried different browsers?",
            "Yes, happens in Chrome and Firefox",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=5,
            impact=5,
            scope=4,
            business_value=5,
        ),
        response_key_points=(
            "Print layout analysis",
            "Temporary formatting solution",
            "Browser compatibility check",
            "PDF export alternative",
        ),
    ),
    EvaluationCase(
        name="User Permission Issue",
        title="Wrong permission settings",
        description="After the recent update, some users lost access to features they need for their work. Need to restore correct permissions.",
        comments=(
            "How many users are affected?",
            "About 15 users from the marketing team",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=8,
            impact=7,
            scope=5,
            business_value=7,
        ),
        response_key_points=(
            "Access impact acknowledgment",
            "Permission audit process",
            "Temporary elevation option",
            "Prevention measures",
        ),
    ),
    EvaluationCase(
        name="Database Performance",
        title="Database queries slow",
        description="Database queries are taking longer than usual to complete. This is affecting overall system performance.",
        comments=(
            "When did you first notice this?",
            "Performance started degrading over the last few hours",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=8,
            impact=8,
            scope=6,
            business_value=8,
        ),
        response_key_points=(
            "Performance impact assessment",
            "Query optimization steps",
            "Resource scaling options",
            "Monitoring enhancement",
        ),
    ),
    EvaluationCase(
        name="Custom Report Builder",
        title="Request for custom reports",
        description="We need the ability to create custom report templates. Current templates don't meet all our needs.",
        comments=(
            "What specific data points are you looking for?",
            "We need to combine data from multiple modules in one report",
        ),
        expected_priority=TicketPriority.LOW,
        expected_factors=ExpectedFactors(
            urgency=3,
            impact=6,
            scope=5,
            business_value=6,
        ),
        response_key_points=(
            "Requirements gathering process",
            "Current export options",
            "Feature development timeline",
            "Interim solution proposal",
        ),
    ),
    EvaluationCase(
        name="API Rate Limiting",
        title="API rate limit too restrictive",
        description="The current API rate limits are too low for our integration needs. We're hitting the limits during peak hours.",
        comments=(
            "What's your current usage pattern?",
            "We make about 1000 requests per minute during busy periods",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=6,
            impact=6,
            scope=5,
            business_value=7,
        ),
        response_key_points=(
            "Usage pattern analysis",
            "Rate limit adjustment options",
            "Optimization suggestions",
            "Scaling considerations",
        ),
    ),
    EvaluationCase(
        name="Data Privacy Concern",
        title="Personal data visible to wrong team",
        description="Our team noticed that we can see customer personal data that should only be visible to the compliance team.",
        comments=(
            "When did you first notice this?",
            "Just discovered it during our routine check today.",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=10,
            impact=9,
            scope=7,
            business_value=10,
        ),
        response_key_points=(
            "Immediate access restriction",
            "Data exposure assessment",
            "Compliance notification",
            "Access audit plan",
        ),
    ),
    EvaluationCase(
        name="Billing Calculation Error",
        title="Incorrect invoice amounts",
        description="The system is calculating incorrect totals on invoices. Some customers are being overcharged.",
        comments=(
            "Is this affecting all invoices?",
            "About 15% of invoices generated today show incorrect totals.",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=9,
            impact=8,
            scope=6,
            business_value=9,
        ),
        response_key_points=(
            "Immediate calculation review",
            "Affected invoice identification",
            "Customer communication plan",
            "Correction process",
        ),
    ),
    EvaluationCase(
        name="File Upload Size",
        title="Increase file upload limit",
        description="The current 10MB file upload limit is too small for our CAD files. We need this increased to at least 50MB.",
        comments=(
            "How often do you need to upload larger files?",
            "Daily, it's affecting our design team's workflow.",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=5,
            impact=6,
            scope=4,
            business_value=6,
        ),
        response_key_points=(
            "Current limitation explanation",
            "Technical assessment needed",
            "Alternative solutions",
            "Timeline for change",
        ),
    ),
    EvaluationCase(
        name="Notification Settings",
        title="Can't disable email notifications",
        description="The email notification toggle in preferences doesn't work. Still receiving emails despite turning them off.",
        comments=(
            "Which types of notifications are you still receiving?",
            "All types - task assignments, mentions, and updates.",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=5,
            impact=5,
            scope=4,
            business_value=5,
        ),
        response_key_points=(
            "Settings verification",
            "Temporary workaround",
            "Fix timeline",
            "User preference confirmation",
        ),
    ),
    EvaluationCase(
        name="Calendar Integration",
        title="Google Calendar sync not working",
        description="Calendar events aren't syncing with Google Calendar since yesterday. Missing important meeting updates.",
        comments=(
            "Have you tried reconnecting your calendar?",
            "Yes, disconnected and reconnected but still not syncing.",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=6,
            impact=6,
            scope=5,
            business_value=6,
        ),
        response_key_points=(
            "Sync status check",
            "Integration troubleshooting",
            "Manual update option",
            "Resolution timeline",
        ),
    ),
    EvaluationCase(
        name="Dashboard Customization",
        title="Add custom widgets",
        description="Would like the ability to add custom metric widgets to our team dashboard for better monitoring.",
        comments=(
            "What kind of metrics would you like to track?",
            "Mainly team performance and project progress metrics.",
        ),
        expected_priority=TicketPriority.LOW,
        expected_factors=ExpectedFactors(
            urgency=3,
            impact=5,
            scope=4,
            business_value=6,
        ),
        response_key_points=(
            "Feature consideration",
            "Current alternatives",
            "Requirements gathering",
            "Development roadmap",
        ),
    ),
    EvaluationCase(
        name="Backup Failure",
        title="Automated backup failed",
        description="Last night's automated backup failed. Error log shows storage capacity issues.",
        comments=(
            "Do you have the specific error message?",
            "Error: 'Insufficient storage space for backup completion'",
        ),
        expected_priority=TicketPriority.HIGH,
        expected_factors=ExpectedFactors(
            urgency=8,
            impact=7,
            scope=6,
            business_value=9,
        ),
        response_key_points=(
            "Data protection status",
            "Storage resolution",
            "Manual backup option",
            "Prevention plan",
        ),
    ),
    EvaluationCase(
        name="Language Support",
        title="Add Spanish language option",
        description="Request to add Spanish language support to the customer portal. Growing Spanish-speaking customer base.",
        comments=(
            "How many customers would this benefit?",
            "Approximately 200 customers based on our recent survey.",
        ),
        expected_priority=TicketPriority.LOW,
        expected_factors=ExpectedFactors(
            urgency=3,
            impact=6,
            scope=5,
            business_value=7,
        ),
        response_key_points=(
            "Market analysis",
            "Translation process",
            "Implementation timeline",
            "Resource requirements",
        ),
    ),
    EvaluationCase(
        name="Session Timeout",
        title="Extend session timeout",
        description="Users are being logged out too frequently. Current 30-minute timeout is too short for our workflow.",
        comments=(
            "What would be a more suitable timeout duration?",
            "At least 2 hours would better match our meeting durations.",
        ),
        expected_priority=TicketPriority.MEDIUM,
        expected_factors=ExpectedFactors(
            urgency=5,
            impact=6,
            scope=4,
            business_value=5,
        ),
        response_key_points=(
            "Security implications",
            "User experience balance",
            "Configuration options",
            "Implementation plan",
        ),
    ),
    EvaluationCase(
        name="Third-party Integration",
        title="Add Salesforce integration",
        description="Need to integrate our system with Salesforce to streamline our sales process and avoid double data entry.",
        comments=(
            "Which Salesforce features do you need to integrate with?",
            "Mainly contacts, opportunities, and custom objects.",
        ),
        expected_priority=TicketPriority.LOW,
        expected_factors=ExpectedFactors(
            urgency=4,
            impact=7,
            scope=6,
            business_value=8,
        ),
        response_key_points=(
            "Integration scope",
            "Technical requirements",
            "Implementation phases",
            "Resource allocation",
        ),
    ),
)


def get_cases(names: list[str] | None = None) -> list[EvaluationCase]:
    """All cases, or the named subset in table order.

    Raises:
        KeyError: if any requested name is unknown
    """
    if not names:
        return list(EVALUATION_CASES)
    known = {case.name for case in EVALUATION_CASES}
    unknown = [name for name in names if name not in known]
    if unknown:
        raise KeyError(f"Unknown evaluation cases: {', '.join(unknown)}")
    wanted = set(names)
    return [case for case in EVALUATION_CASES if case.name in wanted]
