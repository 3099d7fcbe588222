from __future__ import annotations

from typing import Sequence

from ..schemas import ContactStatistics, ScrapedRecord


def has_contact(record: ScrapedRecord) -> bool:
    """Any email, any phone or a free-text contact cue counts."""
    if getattr(record, "emails", None):
        return True
    if getattr(record, "phone_numbers", None):
        return True
    return bool(getattr(record, "contact", None))


def summarize(records: Sequence[ScrapedRecord]) -> ContactStatistics:
    total_emails = sum(len(getattr(r, "emails", None) or ()) for r in records)
    total_phones = sum(len(getattr(r, "phone_numbers", None) or ()) for r in records)
    with_contact = sum(1 for r in records if has_contact(r))
    rate = (with_contact / len(records) * 100.0) if records else 0.0
    return ContactStatistics(
        total_emails=total_emails,
        total_phone_numbers=total_phones,
        profiles_with_contact=with_contact,
        contact_rate_percent=rate,
    )
