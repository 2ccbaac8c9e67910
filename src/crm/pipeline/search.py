"""Deal search filter used by the deals list and the pipeline board."""

from __future__ import annotations

from collections.abc import Iterable

from src.crm.records.schemas import ContactRead, DealRead


def filter_deals(
    deals: Iterable[DealRead],
    contacts: Iterable[ContactRead],
    term: str | None,
) -> list[DealRead]:
    """Return the deals matching term, preserving input order.

    Case-insensitive substring match against the deal title, the linked
    contact's full name, or the linked contact's company. A blank term
    matches every deal. Deals whose contact id dangles can still match on
    their title.
    """
    deals = list(deals)
    needle = (term or "").strip().lower()
    if not needle:
        return deals

    contacts_by_id = {c.id: c for c in contacts}
    matches: list[DealRead] = []
    for deal in deals:
        haystack = [deal.title or ""]
        contact = contacts_by_id.get(deal.contact_id) if deal.contact_id is not None else None
        if contact is not None:
            haystack.append(contact.full_name)
            haystack.append(contact.company or "")
        if any(needle in text.lower() for text in haystack):
            matches.append(deal)
    return matches
