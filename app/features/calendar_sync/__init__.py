"""
Calendar sync feature package.

Pulls calendar events from the provider, resolves each one to an account and
opportunity by attendee domain, and keeps those links current when account
websites or organization domains change. Routers, services and jobs are
imported from their own modules.
"""

# Re-export the pure matching helpers for easy access.
from .domain import build_domain_index, extract_domain, match_event  # noqa: F401
from .domain import SyncResult, SyncState  # noqa: F401
