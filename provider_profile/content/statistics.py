"""
Review-queue statistics for ProviderProfile content items.

Summarises curated publications, trials and media for dashboard cards:
totals, visible and hidden counts, items awaiting review, and breakdowns
by status and content type.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from provider_profile.content.models import ContentItem, ContentType, ItemStatus, VISIBLE_STATUSES

logger = logging.getLogger(__name__)


def items_to_dataframe(items: Iterable[ContentItem]) -> pd.DataFrame:
    """
    Flatten content items into a DataFrame with one row per item.

    Args:
        items: Content items

    Returns:
        DataFrame with id, content_type, origin, status, is_visible,
        is_selected, title, added_at and last_modified columns
    """
    columns = ["id", "content_type", "origin", "status", "is_visible",
               "is_selected", "title", "added_at", "last_modified"]
    rows = [
        {
            "id": item.id,
            "content_type": item.content_type.value,
            "origin": item.origin.value,
            "status": item.status.value,
            "is_visible": item.is_visible,
            "is_selected": item.is_selected,
            "title": item.title,
            "added_at": item.added_at,
            "last_modified": item.last_modified,
        }
        for item in items
    ]
    return pd.DataFrame(rows, columns=columns)


def content_statistics(items: Iterable[ContentItem]) -> Dict[str, Any]:
    """
    Calculate review statistics for a set of content items.

    "total" counts items on the profile (approved, manual or hidden);
    pending and rejected candidates are reported separately.

    Args:
        items: Content items

    Returns:
        Dictionary with counts and the most recent modification time
    """
    df = items_to_dataframe(items)

    stats = {
        "total": 0,
        "visible": 0,
        "hidden": 0,
        "pending_review": 0,
        "rejected": 0,
        "by_status": {status.value: 0 for status in ItemStatus},
        "by_content_type": {content_type.value: 0 for content_type in ContentType},
        "last_modified": None,
    }

    if df.empty:
        return stats

    on_profile_statuses = [status.value for status in VISIBLE_STATUSES] + [ItemStatus.HIDDEN.value]
    on_profile = df[df["status"].isin(on_profile_statuses)]

    stats["total"] = int(len(on_profile))
    stats["visible"] = int(on_profile["is_visible"].sum())
    stats["hidden"] = stats["total"] - stats["visible"]
    stats["pending_review"] = int((df["status"] == ItemStatus.PENDING.value).sum())
    stats["rejected"] = int((df["status"] == ItemStatus.REJECTED.value).sum())

    for status, count in df["status"].value_counts().items():
        stats["by_status"][status] = int(count)
    for content_type, count in df["content_type"].value_counts().items():
        stats["by_content_type"][content_type] = int(count)

    # Naive timestamps are taken as UTC
    stats["last_modified"] = pd.to_datetime(df["last_modified"], utc=True).max().to_pydatetime()

    logger.info(f"Content statistics: {stats['total']} on profile, "
                f"{stats['pending_review']} pending review")
    return stats


def filter_items(items: Iterable[ContentItem],
                 statuses: Optional[Iterable[ItemStatus]] = None,
                 content_types: Optional[Iterable[ContentType]] = None) -> List[ContentItem]:
    """
    Filter content items by status and content type.

    Args:
        items: Content items
        statuses: Statuses to keep (all when None)
        content_types: Content types to keep (all when None)

    Returns:
        Matching items in their original order
    """
    status_set = set(statuses) if statuses is not None else None
    type_set = set(content_types) if content_types is not None else None

    return [
        item for item in items
        if (status_set is None or item.status in status_set)
        and (type_set is None or item.content_type in type_set)
    ]
