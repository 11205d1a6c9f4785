"""Operator scripts for the markup builder (field listing and markup runs)."""

__all__ = ["run_markup"]
