"""CLI tools for support desk administration."""

import json

import anyio
import click

from autocrm.core.security import create_access_token
from autocrm.db.base import Base
from autocrm.db.enums import UserRole
from autocrm.db.models import Ticket
from autocrm.db.session import SessionLocal, engine
from autocrm.services import company_service, profile_service


@click.group()
def cli():
    """AutoCRM CLI tools."""
    pass


@cli.command()
def init_db():
    """Create all tables (dev/test; use alembic in production)."""
    Base.metadata.create_all(bind=engine)
    click.echo("✓ Database tables created")


@cli.command()
@click.option("--name", required=True, help="Company name")
def create_company(name: str):
    """
    Create a company (tenant).

    Example:
        python -m autocrm.cli create-company --name "Acme Corp"
    """
    db = SessionLocal()
    try:
        company = company_service.create_company(db, name)
        click.echo(f"✓ Created company: {company.name}")
        click.echo(f"  ID: {company.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Email address")
@click.option("--name", required=True, help="Full name")
@click.option(
    "--role",
    type=click.Choice([r.value for r in UserRole]),
    default=UserRole.CUSTOMER.value,
    show_default=True,
)
@click.option("--company", "company_name", default=None, help="Company name to join")
def create_user(email: str, name: str, role: str, company_name: str | None):
    """Create a profile, optionally attached to a company."""
    db = SessionLocal()
    try:
        company_id = None
        if company_name:
            company = company_service.get_company_by_name(db, company_name)
            if not company:
                click.echo(f"❌ Company '{company_name}' not found")
                return
            company_id = company.id
        profile = profile_service.create_profile(
            db, name=name, email=email, role=UserRole(role), company_id=company_id
        )
        click.echo(f"✓ Created {role}: {profile.email}")
        click.echo(f"  ID: {profile.id}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Admin email address")
@click.option("--company", "company_name", required=True, help="Company name")
def assign_admin_company(email: str, company_name: str):
    """Attach an admin profile to a company."""
    db = SessionLocal()
    try:
        profile = profile_service.get_profile_by_email(db, email)
        if not profile or profile.role != UserRole.ADMIN:
            click.echo(f"❌ No admin profile for {email}")
            return
        company = company_service.get_company_by_name(db, company_name)
        if not company:
            click.echo(f"❌ Company '{company_name}' not found")
            return
        profile_service.assign_company(db, profile, company)
        click.echo(f"✓ Assigned {email} to {company.name} ({company.id})")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Admin email address")
def verify_tickets(email: str):
    """Compare total tickets with those visible to an admin's company."""
    db = SessionLocal()
    try:
        profile = profile_service.get_profile_by_email(db, email)
        if not profile:
            click.echo(f"❌ No profile for {email}")
            return
        click.echo(f"Profile: role={profile.role.value} company_id={profile.company_id}")
        total = db.query(Ticket).count()
        company_tickets = (
            db.query(Ticket).filter(Ticket.company_id == profile.company_id).all()
            if profile.company_id
            else []
        )
        click.echo(f"Total tickets: {total}")
        click.echo(f"Company tickets: {len(company_tickets)}")
        for ticket in company_tickets:
            click.echo(f"  {ticket.id}  [{ticket.status.value}/{ticket.priority.value}] {ticket.title}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="Profile email address")
@click.option("--hours", type=int, default=None, help="Token lifetime in hours")
def mint_token(email: str, hours: int | None):
    """Print a dev access token for a profile."""
    db = SessionLocal()
    try:
        profile = profile_service.get_profile_by_email(db, email)
        if not profile:
            click.echo(f"❌ No profile for {email}")
            return
        click.echo(create_access_token(profile.id, email=profile.email, expires_hours=hours))
    finally:
        db.close()


@cli.command()
@click.option("--case", "case_names", multiple=True, help="Case name (repeatable); default all")
@click.option("--json", "as_json", is_flag=True, help="Print the full report as JSON")
def run_evaluation(case_names: tuple[str, ...], as_json: bool):
    """Run the AI evaluation cases against the configured model."""
    from autocrm.services.ai_assist_service import build_assistant
    from autocrm.services.evaluation_service import run_evaluation as run

    assistant = build_assistant()
    try:
        report = anyio.run(lambda: run(assistant, names=list(case_names) or None))
    except KeyError as e:
        click.echo(f"❌ {e.args[0]}")
        return

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json", by_alias=True), indent=2))
        return

    for result in report.results:
        if result.error:
            click.echo(f"✗ {result.name}: {result.error}")
        else:
            click.echo(
                f"✓ {result.name}: priority={result.metrics.priority_accuracy:.2f} "
                f"quality={result.metrics.response_quality.overall:.2f} "
                f"({result.metrics.response_time_ms:.0f} ms)"
            )
    if report.summary:
        summary = report.summary
        click.echo("")
        click.echo(f"Success rate: {summary.success_rate:.0%} ({summary.successful_tests}/{summary.total_tests})")
        click.echo(f"Avg priority accuracy: {summary.avg_priority_accuracy:.2f}")
        click.echo(f"Avg response quality: {summary.avg_response_quality.overall:.2f}")
        click.echo(
            f"Latency ms: avg {summary.avg_response_time_ms:.0f} / "
            f"min {summary.min_response_time_ms:.0f} / max {summary.max_response_time_ms:.0f}"
        )


if __name__ == "__main__":
    cli()
