"""
Domain matching rules.

Pure functions that turn websites and attendee emails into comparable
domains, decide whether a meeting involves anyone outside the organization,
and resolve attendees to an account/opportunity. Nothing here touches the
database, so the same rules serve the sync engine, the backfill engine and
the externality recalculation.
"""

import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from .models import AccountRecord, MatchResult

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_HOSTNAME_RE = re.compile(r"^[a-z0-9-]+(\.[a-z0-9-]+)*$")

DomainIndex = dict[str, list[AccountRecord]]


def _strip_www(hostname: str) -> str:
    return hostname[4:] if hostname.startswith("www.") else hostname


def extract_domain(value: str | None) -> str | None:
    """
    Derive a comparable domain from a website URL or an email address.

    "HTTPS://WWW.Example.com/pricing", "example.com" and "jane@example.com"
    all yield "example.com". Returns None for empty or unparsable input.
    """
    if not value:
        return None

    candidate = value.strip()
    if not candidate:
        return None

    if "@" in candidate and not _SCHEME_RE.match(candidate):
        candidate = candidate.rsplit("@", 1)[1]

    if not _SCHEME_RE.match(candidate):
        candidate = f"https://{candidate}"

    try:
        hostname = urlsplit(candidate).hostname
    except ValueError:
        return None

    if not hostname:
        return None

    hostname = _strip_www(hostname.lower().rstrip("."))
    if not _HOSTNAME_RE.match(hostname):
        return None
    return hostname


def email_domain(email: str | None) -> str | None:
    """Domain part of an email address, or None if it has none."""
    if not email or "@" not in email:
        return None
    return extract_domain(email.rsplit("@", 1)[1])


def _other_attendees(attendee_emails: Iterable[str], self_email: str | None) -> list[str]:
    own = (self_email or "").strip().lower()
    return [email for email in attendee_emails if email and email.strip().lower() != own]


def is_external_event(
    attendee_emails: Iterable[str],
    organization_domain: str | None,
    self_email: str | None = None,
) -> bool:
    """
    True when at least one attendee other than the syncing user has an email
    domain that is neither the organization's domain nor a subdomain of it.

    Without an organization domain, or with nobody but the user attending,
    the meeting is internal.
    """
    org_domain = extract_domain(organization_domain)
    if not org_domain:
        return False

    for email in _other_attendees(attendee_emails, self_email):
        domain = email_domain(email)
        if not domain:
            continue
        if domain != org_domain and not domain.endswith(f".{org_domain}"):
            return True
    return False


def build_domain_index(accounts: Iterable[AccountRecord]) -> DomainIndex:
    """Map each derived website domain to its accounts, keeping input order."""
    index: DomainIndex = {}
    for account in accounts:
        domain = extract_domain(account.website)
        if not domain:
            continue
        index.setdefault(domain, []).append(account)
    return index


def _title_matches(title: str, opportunity_name: str) -> bool:
    title = title.strip().lower()
    name = opportunity_name.strip().lower()
    if not title or not name:
        return False
    return name in title or title in name


def match_event(
    index: DomainIndex,
    attendee_emails: Iterable[str],
    title: str | None = None,
    self_email: str | None = None,
) -> MatchResult:
    """
    Resolve an event's attendees to an account and, when unambiguous, an
    opportunity.

    The first attendee (in list order, skipping the user) whose domain is
    indexed picks the account. One opportunity links directly; several are
    narrowed by a case-insensitive substring match against the title.
    """
    for email in _other_attendees(attendee_emails, self_email):
        domain = email_domain(email)
        if not domain or domain not in index:
            continue

        account = index[domain][0]
        opportunities = account.opportunities

        if len(opportunities) == 1:
            return MatchResult(account_id=account.id, opportunity_id=opportunities[0].id)

        for opportunity in opportunities:
            if _title_matches(title or "", opportunity.name):
                return MatchResult(account_id=account.id, opportunity_id=opportunity.id)

        return MatchResult(account_id=account.id)

    return MatchResult()


def has_attendee_at_domain(
    attendee_emails: Iterable[str], domain: str, self_email: str | None = None
) -> bool:
    return any(email_domain(email) == domain for email in _other_attendees(attendee_emails, self_email))
