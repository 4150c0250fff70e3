"""
Profile summary composition for ProviderProfile.

Combines section visibility, hospital permissions and curated content
into the summary shown on a provider's dashboard.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from provider_profile.content.models import ContentItem
from provider_profile.content.statistics import content_statistics
from provider_profile.sections.models import ProfileSection
from provider_profile.sections.permissions import HospitalPermissionResolver, navigation_restrictions
from provider_profile.sections.visibility import (
    SectionVisibilityEngine,
    calculate_completion,
    effective_config,
    most_critical_section,
    rank_sections_needing_attention,
)

logger = logging.getLogger(__name__)


def build_profile_summary(sections: Iterable[ProfileSection],
                          archetype: Optional[str],
                          organization: Optional[str],
                          resolver: HospitalPermissionResolver,
                          engine: SectionVisibilityEngine,
                          content_items: Iterable[ContentItem] = ()) -> Dict[str, Any]:
    """
    Build the dashboard summary for one provider.

    The archetype configuration is applied first and the organisation's
    permission overlay second. Completion is scored against the sections
    that remain required after both steps.

    Args:
        sections: The provider's profile sections
        archetype: Hospital archetype of the provider's organisation
        organization: Organisation name from the provider's profile
        resolver: Hospital permission resolver
        engine: Section visibility engine
        content_items: Curated publications, trials and media

    Returns:
        Dictionary with hospital_id, archetype, sections, completion,
        sections_needing_attention, most_critical_section, navigation and
        content
    """
    overlay = resolver.get_permissions(organization)
    section_config = engine.resolve_section_config(archetype)
    visible = engine.visible_sections(sections, archetype, overlay, section_config=section_config)

    completion = calculate_completion(visible, effective_config(visible, section_config.archetype))
    attention = rank_sections_needing_attention(visible)
    critical = most_critical_section(visible)

    summary = {
        "hospital_id": overlay.hospital_id,
        "archetype": section_config.archetype,
        "sections": visible,
        "completion": completion,
        "sections_needing_attention": [section.id for section in attention],
        "most_critical_section": critical.id if critical else None,
        "navigation": navigation_restrictions(overlay),
        "content": content_statistics(content_items),
    }

    logger.info(f"Profile summary: {len(visible)} visible sections, {completion}% complete, "
                f"hospital {overlay.hospital_id or 'default'}")
    return summary
