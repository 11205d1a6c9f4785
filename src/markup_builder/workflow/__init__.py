"""Workflow facade running discovery and markup application end to end."""

from .service import MarkupRunResult, MarkupWorkflow, run_markup_workflow

__all__ = ["MarkupRunResult", "MarkupWorkflow", "run_markup_workflow"]
