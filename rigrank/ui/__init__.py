"""Terminal presentation."""

from .render import render_error, render_progress, render_report_card

__all__ = ["render_error", "render_progress", "render_report_card"]
