"""
Content item data types for ProviderProfile.

Publications, clinical trials and media articles share one record type,
ContentItem, which carries a content-type tag and a type-specific payload.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union


class ContentType(str, Enum):
    """Kind of curated content."""

    PUBLICATION = "publication"
    CLINICAL_TRIAL = "clinical_trial"
    MEDIA_ARTICLE = "media_article"


class Origin(str, Enum):
    """How an item entered the profile."""

    DISCOVERED = "discovered"
    MANUAL = "manual"


class ItemStatus(str, Enum):
    """Review status of a content item."""

    PENDING = "pending"  # Discovered, awaiting review
    APPROVED = "approved"
    REJECTED = "rejected"
    MANUAL = "manual"  # Entered by the provider, no review
    HIDDEN = "hidden"  # Kept on the profile but not shown publicly


VISIBLE_STATUSES = frozenset({ItemStatus.APPROVED, ItemStatus.MANUAL})


@dataclass(frozen=True)
class PublicationPayload:
    """Bibliographic data for a publication."""

    title: str
    authors: List[str] = field(default_factory=list)
    journal: str = ""
    publication_date: Optional[date] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    doi: Optional[str] = None
    pmid: Optional[str] = None
    abstract: Optional[str] = None
    keywords: List[str] = field(default_factory=list)
    publication_type: str = "peer_reviewed"


@dataclass(frozen=True)
class ClinicalTrialPayload:
    """Trial metadata as registered on ClinicalTrials.gov."""

    nct_id: str
    title: str
    status: str = "unknown"
    phase: List[str] = field(default_factory=list)
    study_type: str = ""
    conditions: List[str] = field(default_factory=list)
    interventions: List[str] = field(default_factory=list)
    sponsor: str = ""
    collaborators: List[str] = field(default_factory=list)
    enrollment_count: int = 0
    start_date: Optional[str] = None
    completion_date: Optional[str] = None
    brief_summary: str = ""
    keywords: List[str] = field(default_factory=list)
    user_role: str = "principal_investigator"


@dataclass(frozen=True)
class MediaArticlePayload:
    """Article metadata for press and media coverage."""

    url: str
    title: str
    publication: str = ""
    media_type: str = "news_article"
    description: Optional[str] = None
    author: Optional[str] = None
    published_date: Optional[str] = None
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    user_notes: Optional[str] = None
    is_featured: bool = False


ContentPayload = Union[PublicationPayload, ClinicalTrialPayload, MediaArticlePayload]

PAYLOAD_CONTENT_TYPES = {
    PublicationPayload: ContentType.PUBLICATION,
    ClinicalTrialPayload: ContentType.CLINICAL_TRIAL,
    MediaArticlePayload: ContentType.MEDIA_ARTICLE,
}


def content_type_for(payload: ContentPayload) -> ContentType:
    """Return the content type tag matching a payload variant."""
    try:
        return PAYLOAD_CONTENT_TYPES[type(payload)]
    except KeyError:
        raise TypeError(f"Unsupported content payload: {type(payload).__name__}") from None


@dataclass(frozen=True)
class ContentItem:
    """
    A curated record on a provider profile.

    Items are immutable; lifecycle operations return updated copies.
    An item may only be visible while its status is approved or manual.
    """

    id: str
    content_type: ContentType
    origin: Origin
    status: ItemStatus
    payload: ContentPayload
    is_visible: bool
    is_selected: bool
    added_at: datetime
    last_modified: datetime

    def __post_init__(self):
        if self.is_visible and self.status not in VISIBLE_STATUSES:
            raise ValueError(
                f"Content item '{self.id}' cannot be visible with status '{self.status.value}'"
            )
        if content_type_for(self.payload) != self.content_type:
            raise ValueError(
                f"Payload {type(self.payload).__name__} does not match content type "
                f"'{self.content_type.value}'"
            )

    @property
    def title(self) -> str:
        return self.payload.title
