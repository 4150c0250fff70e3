"""
Upstream payload mapping for ProviderProfile.

Converts already-fetched ClinicalTrials.gov studies, PubMed articles and
URL metadata into content payloads ready for admission. Upstream
summaries, abstracts and descriptions go through sanitize_free_text like
any other free text.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlsplit

from provider_profile.content.models import (
    ClinicalTrialPayload,
    MediaArticlePayload,
    PublicationPayload,
)
from provider_profile.transform.records import (
    MAX_FREE_TEXT_LENGTH,
    clean_text,
    optional_text,
    sanitize_free_text,
)
from provider_profile.validation.identifiers import normalize_nct_id, normalize_url

logger = logging.getLogger(__name__)

SITE_NAMES = {
    "nytimes.com": "The New York Times",
    "wsj.com": "The Wall Street Journal",
    "washingtonpost.com": "The Washington Post",
    "cnn.com": "CNN",
    "bbc.com": "BBC",
    "reuters.com": "Reuters",
    "forbes.com": "Forbes",
    "bloomberg.com": "Bloomberg",
    "npr.org": "NPR",
    "pbs.org": "PBS",
    "abcnews.go.com": "ABC News",
    "nbcnews.com": "NBC News",
    "cbsnews.com": "CBS News",
    "foxnews.com": "Fox News",
    "theguardian.com": "The Guardian",
    "ft.com": "Financial Times",
    "statnews.com": "STAT News",
    "medscape.com": "Medscape",
    "webmd.com": "WebMD",
}

PUBLICATION_TYPE_MAP = {
    "journal article": "peer_reviewed",
    "review": "review",
    "systematic review": "review",
    "case reports": "case_report",
    "editorial": "editorial",
    "comment": "editorial",
    "book": "book",
    "book chapter": "chapter",
    "abstract": "abstract",
}


def parse_clinical_trial_study(study: Mapping[str, Any],
                               max_length: int = MAX_FREE_TEXT_LENGTH) -> ClinicalTrialPayload:
    """
    Map a ClinicalTrials.gov v2 study to a trial payload.

    Args:
        study: Study object with a protocolSection
        max_length: Length limit for the sanitized brief summary

    Returns:
        ClinicalTrialPayload
    """
    protocol = study.get("protocolSection") or {}
    identification = protocol.get("identificationModule") or {}
    status = protocol.get("statusModule") or {}
    design = protocol.get("designModule") or {}
    conditions = protocol.get("conditionsModule") or {}
    interventions = protocol.get("interventionsModule") or {}
    sponsors = protocol.get("sponsorCollaboratorsModule") or {}
    description = protocol.get("descriptionModule") or {}

    return ClinicalTrialPayload(
        nct_id=normalize_nct_id(identification.get("nctId", "")),
        title=clean_text(identification.get("briefTitle")),
        status=clean_text(status.get("overallStatus")).lower() or "unknown",
        phase=list(design.get("phases") or []),
        study_type=clean_text(design.get("studyType")),
        conditions=list(conditions.get("conditions") or []),
        interventions=[clean_text(i.get("name")) for i in interventions.get("interventions") or []],
        sponsor=clean_text((sponsors.get("leadSponsor") or {}).get("name")),
        collaborators=[clean_text(c.get("name")) for c in sponsors.get("collaborators") or []],
        enrollment_count=int((design.get("enrollmentInfo") or {}).get("count") or 0),
        start_date=optional_text((status.get("startDateStruct") or {}).get("date")),
        completion_date=optional_text((status.get("completionDateStruct") or {}).get("date")),
        brief_summary=sanitize_free_text(description.get("briefSummary"), max_length),
        keywords=list(conditions.get("keywords") or []),
    )


def _author_name(author: Any) -> str:
    if isinstance(author, str):
        return author.strip()
    last_name = clean_text(author.get("lastName"))
    fore_name = clean_text(author.get("foreName")) or clean_text(author.get("initials"))
    return f"{fore_name} {last_name}".strip()


def _parse_pub_date(value: Any) -> Optional[date]:
    """Parse PubMed dates such as '2023', '2023 Mar', '2023 Mar 15' or '2023-03-15'."""
    text = clean_text(value)
    if not text:
        return None

    for fmt in ("%Y-%m-%d", "%Y %b %d", "%Y %b", "%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    logger.warning(f"Unrecognised publication date format: {text}")
    return None


def _publication_type(types: Any) -> str:
    for value in types or []:
        mapped = PUBLICATION_TYPE_MAP.get(clean_text(value).lower())
        if mapped:
            return mapped
    return "other"


def parse_pubmed_article(article: Mapping[str, Any],
                         max_length: int = MAX_FREE_TEXT_LENGTH) -> PublicationPayload:
    """
    Map a PubMed article record to a publication payload.

    Args:
        article: Article dict (pmid, title, authors, journal, pubDate, ...)
        max_length: Length limit for the sanitized abstract

    Returns:
        PublicationPayload
    """
    return PublicationPayload(
        title=clean_text(article.get("title")),
        authors=[name for name in (_author_name(a) for a in article.get("authors") or []) if name],
        journal=clean_text(article.get("journal")),
        publication_date=_parse_pub_date(article.get("pubDate")),
        volume=optional_text(article.get("volume")),
        issue=optional_text(article.get("issue")),
        pages=optional_text(article.get("pages")),
        doi=optional_text(article.get("doi")),
        pmid=optional_text(article.get("pmid")),
        abstract=sanitize_free_text(article.get("abstract"), max_length) or None,
        keywords=list(article.get("keywords") or []),
        publication_type=_publication_type(article.get("publicationType")),
    )


def extract_domain(url: str) -> str:
    normalized = normalize_url(url)
    if normalized is None:
        return ""
    return (urlsplit(normalized).hostname or "").lower()


def site_name_from_domain(domain: str) -> str:
    """
    Human-readable publication name for a domain.

    Known outlets are matched on the registered domain, so subdomains such
    as www.nytimes.com resolve too; otherwise the first label is
    capitalised.
    """
    domain = domain.lower()
    bare = domain[len("www."):] if domain.startswith("www.") else domain

    for known, name in SITE_NAMES.items():
        if bare == known or bare.endswith("." + known):
            return name

    label = bare.split(".")[0] if bare else ""
    return label.capitalize()


def detect_media_type(url: str, title: Optional[str] = None) -> str:
    """
    Guess the media type of an article from its URL and title.

    Args:
        url: Article URL
        title: Article title, if known

    Returns:
        One of video, podcast, press_release, interview, opinion,
        blog_post or news_article
    """
    domain = extract_domain(url)
    path = url.lower()
    title = (title or "").lower()

    if "youtube.com" in domain or "vimeo.com" in domain:
        return "video"
    if "spotify.com" in domain or "podcasts.apple.com" in domain or "podcast" in path or "episode" in path:
        return "podcast"
    if ("press-release" in path or "/pr/" in path
            or "businesswire.com" in domain or "prnewswire.com" in domain):
        return "press_release"
    if "interview" in path or "interview" in title:
        return "interview"
    if any(marker in path for marker in ("opinion", "editorial", "op-ed")) or "opinion" in title:
        return "opinion"
    if "blog" in path or "medium.com" in domain or "substack.com" in domain:
        return "blog_post"

    return "news_article"


def parse_url_metadata(metadata: Mapping[str, Any], user_notes: Optional[str] = None,
                       max_length: int = MAX_FREE_TEXT_LENGTH) -> MediaArticlePayload:
    """
    Map extracted URL metadata to a media article payload.

    Missing site names are derived from the domain and missing media
    types are detected from the URL. The description and the provider's
    notes are sanitized.

    Args:
        metadata: URL metadata (url, title, description, siteName, ...)
        user_notes: Free-text notes entered by the provider
        max_length: Length limit for sanitized description and notes

    Returns:
        MediaArticlePayload
    """
    raw_url = clean_text(metadata.get("url"))
    url = normalize_url(raw_url) or raw_url
    title = clean_text(metadata.get("title")) or url
    media_type = clean_text(metadata.get("type")) or detect_media_type(url, title)

    notes = sanitize_free_text(user_notes, max_length) if user_notes else None

    return MediaArticlePayload(
        url=url,
        title=title,
        publication=clean_text(metadata.get("siteName")) or site_name_from_domain(extract_domain(url)),
        media_type=media_type,
        description=sanitize_free_text(metadata.get("description"), max_length) or None,
        author=optional_text(metadata.get("author")),
        published_date=optional_text(metadata.get("publishedDate")),
        image_url=optional_text(metadata.get("imageUrl")),
        tags=list(metadata.get("tags") or []),
        user_notes=notes or None,
    )


def media_payloads_from_metadata(entries: List[Dict[str, Any]],
                                 max_length: int = MAX_FREE_TEXT_LENGTH) -> List[MediaArticlePayload]:
    """Map a batch of URL metadata records, skipping entries without a usable URL."""
    payloads = []
    for entry in entries:
        if normalize_url(entry.get("url")) is None:
            logger.warning("Skipping media metadata without a valid URL")
            continue
        payloads.append(parse_url_metadata(entry, max_length=max_length))
    return payloads
