"""qarun report rendering.

Jinja2 templates for Markdown reports live next to this module.
"""

from qarun.templates.renderer import ReportRenderer

__all__ = ["ReportRenderer"]
