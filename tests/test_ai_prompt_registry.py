import pytest


def test_prompt_registry_renders_ticket_response():
    from autocrm.services.ai_prompt_registry import get_prompt

    prompt = get_prompt("ticket_response")
    rendered = prompt.render_user(context="Printer on fire", comments="1. Still burning")

    assert "Printer on fire" in rendered
    assert "1. Still burning" in rendered
    assert prompt.version


def test_prompt_registry_renders_priority_analysis_with_literal_braces():
    from autocrm.services.ai_prompt_registry import get_prompt

    rendered = get_prompt("priority_analysis").render_user(
        title="Cannot log in", description="Error 500 on submit"
    )

    assert "Title: Cannot log in" in rendered
    assert "Description: Error 500 on submit" in rendered
    assert '"businessValue": 5' in rendered
    assert "{{" not in rendered


def test_prompt_registry_renders_thread_summary():
    from autocrm.services.ai_prompt_registry import get_prompt

    rendered = get_prompt("thread_summary").render_user(
        ticket_content="Sync fails", comments="a\nb"
    )

    assert "Ticket: Sync fails" in rendered
    assert "Thread: a\nb" in rendered


def test_prompt_registry_invalid_key_raises():
    from autocrm.services.ai_prompt_registry import get_prompt

    with pytest.raises(KeyError):
        get_prompt("unknown_key")
