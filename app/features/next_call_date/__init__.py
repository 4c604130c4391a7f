"""
Next-call-date feature package.

Derives an opportunity's next call from upcoming calendar events, call
recordings and meeting notes.
"""

from .domain import NextCallDate, resolve_next_call_date  # noqa: F401
