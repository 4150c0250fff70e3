"""
Content item review lifecycle for ProviderProfile.

One state machine governs publications, clinical trials and media
articles:

    discovered -> pending -> approved | rejected
    approved <-> hidden
    manual entry -> manual <-> hidden

Rejected is terminal. Every transition returns a new ContentItem; an
illegal transition raises InvalidTransition and changes nothing.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Set, Tuple, Union

from provider_profile.errors import InvalidTransition, ValidationError
from provider_profile.validation.identifiers import (
    normalize_nct_id,
    normalize_url,
    validate_nct_id,
    validate_pmid,
    validate_url,
)
from provider_profile.content.models import (
    ClinicalTrialPayload,
    ContentItem,
    ContentPayload,
    ContentType,
    ItemStatus,
    MediaArticlePayload,
    Origin,
    PublicationPayload,
    VISIBLE_STATUSES,
    content_type_for,
)

logger = logging.getLogger(__name__)

ID_PREFIXES = {
    ContentType.PUBLICATION: "pubmed",
    ContentType.CLINICAL_TRIAL: "ct",
    ContentType.MEDIA_ARTICLE: "media",
}

# Identifier each content type is admitted by when entered manually
MANUAL_IDENTIFIERS = {
    ContentType.PUBLICATION: ("pmid", validate_pmid, "PMID should contain only numbers"),
    ContentType.CLINICAL_TRIAL: ("nct_id", validate_nct_id, "Expected format: NCT########"),
    ContentType.MEDIA_ARTICLE: ("url", validate_url, "Please enter a valid web address"),
}

# Canonical form written into the payload once the identifier validates
CANONICAL_IDENTIFIERS = {
    ContentType.PUBLICATION: lambda value: value.strip(),
    ContentType.CLINICAL_TRIAL: normalize_nct_id,
    ContentType.MEDIA_ARTICLE: normalize_url,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_item_id(content_type: ContentType, origin: Origin) -> str:
    prefix = "manual" if origin == Origin.MANUAL else ID_PREFIXES[content_type]
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def admit_discovered(payload: ContentPayload, now: Optional[datetime] = None) -> ContentItem:
    """
    Admit an automatically discovered record for review.

    Args:
        payload: Type-specific content payload
        now: Timestamp to stamp (defaults to current UTC time)

    Returns:
        Pending, hidden, unselected content item
    """
    content_type = content_type_for(payload)
    timestamp = now or _utcnow()

    return ContentItem(
        id=_new_item_id(content_type, Origin.DISCOVERED),
        content_type=content_type,
        origin=Origin.DISCOVERED,
        status=ItemStatus.PENDING,
        payload=payload,
        is_visible=False,
        is_selected=False,
        added_at=timestamp,
        last_modified=timestamp,
    )


def admit_manual(identifier: str, payload: ContentPayload,
                 now: Optional[datetime] = None) -> Union[ContentItem, ValidationError]:
    """
    Admit a record the provider entered by hand.

    The identifier (PMID, NCT id or URL depending on the payload type) is
    validated first. On failure nothing is created and a ValidationError
    value is returned. On success its canonical form replaces whatever
    the payload carried in that field.

    Args:
        identifier: Identifier typed by the provider
        payload: Content payload resolved for that identifier
        now: Timestamp to stamp (defaults to current UTC time)

    Returns:
        Manual, visible content item, or ValidationError
    """
    content_type = content_type_for(payload)
    field_name, validator, message = MANUAL_IDENTIFIERS[content_type]

    if not validator(identifier):
        logger.info(f"Rejected manual {content_type.value} entry: invalid {field_name}")
        return ValidationError(field=field_name, message=message, value=identifier)

    canonical = CANONICAL_IDENTIFIERS[content_type](identifier)
    timestamp = now or _utcnow()
    return ContentItem(
        id=_new_item_id(content_type, Origin.MANUAL),
        content_type=content_type,
        origin=Origin.MANUAL,
        status=ItemStatus.MANUAL,
        payload=replace(payload, **{field_name: canonical}),
        is_visible=True,
        is_selected=True,
        added_at=timestamp,
        last_modified=timestamp,
    )


def _require_status(item: ContentItem, allowed: Iterable[ItemStatus], action: str):
    if item.status not in allowed:
        raise InvalidTransition(item.id, item.status.value, action)


def approve(item: ContentItem, now: Optional[datetime] = None) -> ContentItem:
    """Approve a pending item, making it visible."""
    _require_status(item, {ItemStatus.PENDING}, "approve")
    return replace(
        item,
        status=ItemStatus.APPROVED,
        is_visible=True,
        is_selected=True,
        last_modified=now or _utcnow(),
    )


def reject(item: ContentItem, now: Optional[datetime] = None) -> ContentItem:
    """Reject a pending item. Rejection is terminal."""
    _require_status(item, {ItemStatus.PENDING}, "reject")
    return replace(
        item,
        status=ItemStatus.REJECTED,
        is_visible=False,
        is_selected=False,
        last_modified=now or _utcnow(),
    )


def restored_status(item: ContentItem) -> ItemStatus:
    """Status a hidden item returns to when shown again, taken from its origin."""
    return ItemStatus.MANUAL if item.origin == Origin.MANUAL else ItemStatus.APPROVED


def set_visibility(item: ContentItem, visible: bool,
                   now: Optional[datetime] = None) -> ContentItem:
    """
    Show or hide an approved, manual or hidden item.

    Hiding moves the item to hidden. Showing a hidden item restores
    approved or manual according to how the item was admitted. Requests
    that do not change visibility return the item unchanged.

    Args:
        item: Content item to update
        visible: Desired public visibility
        now: Timestamp to stamp (defaults to current UTC time)

    Returns:
        Updated content item
    """
    action = "show" if visible else "hide"
    _require_status(item, {ItemStatus.APPROVED, ItemStatus.MANUAL, ItemStatus.HIDDEN}, action)

    if visible == item.is_visible:
        return item

    if visible:
        status = restored_status(item)
    else:
        status = ItemStatus.HIDDEN

    return replace(item, status=status, is_visible=visible, last_modified=now or _utcnow())


def toggle_selected(item: ContentItem, now: Optional[datetime] = None) -> ContentItem:
    """Flip the selection flag used for bulk actions. Rejected items cannot be selected."""
    if not item.is_selected:
        _require_status(item, set(ItemStatus) - {ItemStatus.REJECTED}, "select")
    return replace(item, is_selected=not item.is_selected, last_modified=now or _utcnow())


def _publication_keys(payload: PublicationPayload) -> Set[str]:
    keys = set()
    if payload.doi and payload.doi.strip():
        doi = payload.doi.strip().lower()
        for prefix in ("https://doi.org/", "http://doi.org/", "doi:"):
            if doi.startswith(prefix):
                doi = doi[len(prefix):]
        keys.add(f"doi:{doi}")
    if payload.pmid and payload.pmid.strip():
        keys.add(f"pmid:{payload.pmid.strip()}")
    return keys


def _media_url_key(url: str) -> Optional[str]:
    normalized = normalize_url(url)
    if normalized is None:
        return None
    # Scheme, "www." and trailing slash do not distinguish articles
    without_scheme = normalized.split("://", 1)[1].split("#", 1)[0]
    if without_scheme.startswith("www."):
        without_scheme = without_scheme[len("www."):]
    host_and_path, _, query = without_scheme.partition("?")
    host_and_path = host_and_path.rstrip("/")
    return f"url:{host_and_path}?{query}" if query else f"url:{host_and_path}"


def natural_keys(entry: Union[ContentItem, ContentPayload]) -> Set[str]:
    """
    Natural keys identifying the real-world record behind an item.

    Publications are keyed by DOI and PMID, trials by NCT id and media
    articles by normalized URL. Titles and summaries are ignored.

    Args:
        entry: Content item or bare payload

    Returns:
        Set of key strings, empty when the payload carries no identifier
    """
    payload = entry.payload if isinstance(entry, ContentItem) else entry

    if isinstance(payload, PublicationPayload):
        return _publication_keys(payload)
    if isinstance(payload, ClinicalTrialPayload):
        nct_id = normalize_nct_id(payload.nct_id)
        return {f"nct:{nct_id}"} if nct_id else set()
    if isinstance(payload, MediaArticlePayload):
        key = _media_url_key(payload.url)
        return {key} if key else set()

    raise TypeError(f"Unsupported content payload: {type(payload).__name__}")


def deduplicate(existing_items: Iterable[ContentItem],
                candidate: Union[ContentItem, ContentPayload],
                include_rejected: bool = False) -> bool:
    """
    Decide whether a discovered candidate duplicates an existing item.

    Rejected items are ignored unless include_rejected is set, so a
    rediscovered record that was rejected earlier comes back as a new
    candidate rather than reviving the rejected one.

    Args:
        existing_items: Items already on the profile
        candidate: Newly discovered item or payload
        include_rejected: Also match against rejected items

    Returns:
        True if the candidate should be dropped
    """
    candidate_payload = candidate.payload if isinstance(candidate, ContentItem) else candidate
    candidate_type = content_type_for(candidate_payload)
    candidate_keys = natural_keys(candidate_payload)

    if not candidate_keys:
        return False

    for item in existing_items:
        if item.content_type != candidate_type:
            continue
        if item.status == ItemStatus.REJECTED and not include_rejected:
            continue
        if natural_keys(item) & candidate_keys:
            return True

    return False


def merge_discovered(existing_items: List[ContentItem], payloads: Iterable[ContentPayload],
                     include_rejected: bool = False,
                     now: Optional[datetime] = None) -> Tuple[List[ContentItem], int]:
    """
    Admit a batch of discovery results, skipping duplicates.

    Duplicates are checked against existing items and against earlier
    entries of the same batch.

    Args:
        existing_items: Items already on the profile
        payloads: Discovery results
        include_rejected: Also treat rejected items as duplicates
        now: Timestamp to stamp on admitted items

    Returns:
        Tuple of (existing plus newly admitted items, number dropped)
    """
    merged = list(existing_items)
    dropped = 0

    for payload in payloads:
        if deduplicate(merged, payload, include_rejected=include_rejected):
            dropped += 1
            continue
        merged.append(admit_discovered(payload, now=now))

    admitted = len(merged) - len(existing_items)
    logger.info(f"Discovery merge admitted {admitted} items, dropped {dropped} duplicates")
    return merged, dropped


def is_publicly_visible(item: ContentItem) -> bool:
    return item.is_visible and item.status in VISIBLE_STATUSES


def public_items(items: Iterable[ContentItem]) -> List[ContentItem]:
    """Items to render on the public profile."""
    return [item for item in items if is_publicly_visible(item)]


def apply_to_item(items: List[ContentItem], item_id: str,
                  transition: Callable[[ContentItem], ContentItem]) -> List[ContentItem]:
    """
    Apply a transition to the item with the given id.

    Args:
        items: Items on the profile
        item_id: Id of the item to update
        transition: Lifecycle function taking and returning an item

    Returns:
        New list with the updated item in place
    """
    for index, item in enumerate(items):
        if item.id == item_id:
            updated = list(items)
            updated[index] = transition(item)
            return updated

    raise KeyError(f"No content item with id '{item_id}'")
