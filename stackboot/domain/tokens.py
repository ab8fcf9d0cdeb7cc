"""Credential record merge policy for the machine token cache."""

from __future__ import annotations

from typing import Any, Iterable

from .models import CredentialRecord


def domain_merge_credentials(
    existing: Iterable[CredentialRecord],
    incoming: Iterable[CredentialRecord],
) -> list[CredentialRecord]:
    """Merge credential records keeping the newest record per identity.

    Records are concatenated (existing first), deduplicated by account
    identity, and sorted by recency descending. On equal timestamps the
    later record in the concatenation wins, so incoming beats existing.
    Merging a list with itself returns the same list.

    Args:
        existing: Records already cached.
        incoming: Newly validated records.

    Returns:
        list[CredentialRecord]: Merged records, newest first.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    newest_by_identity: dict[str, CredentialRecord] = {}
    for record in [*existing, *incoming]:
        current = newest_by_identity.get(record.email)
        if current is None or record.date >= current.date:
            newest_by_identity[record.email] = record
    return sorted(newest_by_identity.values(), key=lambda record: record.date, reverse=True)


def domain_parse_credential_payloads(payloads: object) -> list[CredentialRecord]:
    """Parse cached credential payloads, dropping malformed entries.

    Args:
        payloads: Cached value under the token cache key.

    Returns:
        list[CredentialRecord]: Parsed records in cached order.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if not isinstance(payloads, list):
        return []
    records: list[CredentialRecord] = []
    for payload in payloads:
        if not isinstance(payload, dict):
            continue
        try:
            records.append(CredentialRecord.credential_from_payload(payload))
        except ValueError:
            continue
    return records


def domain_serialize_credentials(records: Iterable[CredentialRecord]) -> list[dict[str, Any]]:
    """Return JSON-serializable payloads for credential records."""

    return [record.credential_to_payload() for record in records]
