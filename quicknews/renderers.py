"""Rendering helpers for the click summary report."""

from __future__ import annotations

from .models import ClickSummary
from .templating import get_environment

REPORT_TITLE = "Quick NewsGPT Daily Summary"


def build_summary_html(summary: ClickSummary) -> str:
    """Render the HTML report body using the Jinja2 template."""
    env = get_environment()
    template = env.get_template("summary.html.j2")
    return template.render(summary=summary, title=REPORT_TITLE)


def build_summary_text(summary: ClickSummary) -> str:
    """Render the plain-text report body using the Jinja2 template."""
    env = get_environment()
    template = env.get_template("summary.txt.j2")
    return template.render(summary=summary, title=REPORT_TITLE)


def build_summary_subject(summary: ClickSummary) -> str:
    return f"Daily Click Summary - {summary.date}"
