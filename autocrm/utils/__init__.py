"""Utility modules."""

from autocrm.utils.sanitize import html_to_text, is_blank_html, sanitize_html

__all__ = ["html_to_text", "is_blank_html", "sanitize_html"]
