"""Condense applied markup texts into a counted summary."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable

from markup_builder.core.exceptions import ClipboardError
from markup_builder.core.logging import get_logger
from markup_builder.core.models import CondensedGroup, MarkupResult

LOGGER = get_logger(__name__)

SummarySink = Callable[[str], None]


def condense(results: Iterable[MarkupResult]) -> list[CondensedGroup]:
    """Group results by exact text; groups keep first-seen order."""
    counts: dict[str, int] = {}
    for result in results:
        if not result.text:
            continue
        counts[result.text] = counts.get(result.text, 0) + result.count
    return [CondensedGroup(text=text, count=count) for text, count in counts.items()]


def render(groups: Iterable[CondensedGroup], suffix: str = "tk") -> str:
    return "\n".join(f"{group.text} - {group.count}{suffix}" for group in groups)


def export_summary(text: str, sink: SummarySink) -> None:
    """Hand ``text`` to ``sink``; sink failures surface as ClipboardError."""
    try:
        sink(text)
    except Exception as exc:  # pylint: disable=broad-except
        LOGGER.warning("summary.export_failed", error=str(exc))
        raise ClipboardError("Summary could not be exported") from exc


class FileSummarySink:
    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def __call__(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(text + "\n" if text else "", encoding="utf-8")
