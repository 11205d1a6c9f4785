"""Markup composition, application and summaries."""

from .applier import MarkupApplier
from .composer import MarkupComposer
from .condenser import FileSummarySink, SummarySink, condense, export_summary, render
from .selection import FieldSelection

__all__ = [
    "FieldSelection",
    "FileSummarySink",
    "MarkupApplier",
    "MarkupComposer",
    "SummarySink",
    "condense",
    "export_summary",
    "render",
]
