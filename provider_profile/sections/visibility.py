"""
Section visibility and completion engine for ProviderProfile.

Combines a hospital archetype's section configuration with the hospital's
permission overlay to decide which profile sections are shown and
required, and scores profile completion over the required sections.

The archetype configuration is always applied first; the overlay is the
final authority.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from provider_profile.config import get_default_profile_config
from provider_profile.errors import ConfigurationError
from provider_profile.sections.models import (
    HospitalPermissionOverlay,
    PRIORITY_WEIGHTS,
    ProfileSection,
    SectionConfig,
    SectionPriority,
    SectionStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_ARCHETYPE = "general"

ATTENTION_STATUSES = (SectionStatus.NEEDS_UPDATE, SectionStatus.MISSING)


def resolve_section_config(archetype: Optional[str],
                           archetypes: Optional[Mapping[str, Mapping[str, Any]]] = None,
                           strict: bool = False) -> SectionConfig:
    """
    Look up the section configuration for a hospital archetype.

    Unknown or empty archetypes resolve to "general" with a warning. In
    strict mode an unknown archetype raises ConfigurationError instead.

    Args:
        archetype: Archetype name, e.g. "academic_medical_center"
        archetypes: Archetype table (defaults to the built-in table)
        strict: Raise instead of falling back for unknown archetypes

    Returns:
        SectionConfig for the archetype
    """
    if archetypes is None:
        archetypes = get_default_profile_config()["archetypes"]

    if DEFAULT_ARCHETYPE not in archetypes:
        raise ConfigurationError(f"Archetype table has no '{DEFAULT_ARCHETYPE}' entry")

    if archetype and archetype in archetypes:
        return SectionConfig.from_dict(archetype, archetypes[archetype])

    if archetype:
        if strict:
            raise ConfigurationError(f"Unknown hospital archetype: {archetype}")
        logger.warning(f"Unknown hospital archetype '{archetype}', using '{DEFAULT_ARCHETYPE}'")

    return SectionConfig.from_dict(DEFAULT_ARCHETYPE, archetypes[DEFAULT_ARCHETYPE])


def apply_config(sections: Iterable[ProfileSection], config: SectionConfig) -> List[ProfileSection]:
    """
    Apply an archetype configuration to profile sections.

    Sections not listed as visible are dropped from the result.

    Args:
        sections: Base section catalog
        config: Archetype configuration

    Returns:
        Visible sections with visibility and requirement flags set
    """
    visible = set(config.visible_sections)
    required = set(config.required_sections)

    configured = [
        replace(
            section,
            is_visible=section.id in visible,
            is_required=section.id in required,
            hospital_specific=config.archetype != DEFAULT_ARCHETYPE,
        )
        for section in sections
    ]
    return [section for section in configured if section.is_visible]


def apply_permission_overlay(sections: Iterable[ProfileSection],
                             overlay: HospitalPermissionOverlay) -> List[ProfileSection]:
    """
    Apply a hospital's permission overlay.

    Sections with an overlay entry take its visibility and requirement;
    others keep their flags. Only visible sections are returned.

    Args:
        sections: Sections, normally the output of apply_config
        overlay: Hospital permission overlay

    Returns:
        Visible sections after the overlay
    """
    result = []
    for section in sections:
        permission = overlay.get(section.id)
        if permission is not None:
            section = replace(
                section,
                is_visible=permission.is_visible,
                is_required=permission.is_required,
                hospital_specific=True,
            )
        if section.is_visible:
            result.append(section)

    return result


def effective_config(sections: Iterable[ProfileSection], archetype: str = DEFAULT_ARCHETYPE) -> SectionConfig:
    """Build the SectionConfig that a list of already-filtered sections represents."""
    sections = list(sections)
    return SectionConfig(
        visible_sections=tuple(section.id for section in sections if section.is_visible),
        required_sections=tuple(section.id for section in sections if section.is_required),
        archetype=archetype,
    )


def calculate_completion(sections: Iterable[ProfileSection], config: SectionConfig) -> int:
    """
    Calculate profile completion as a percentage of required sections.

    Args:
        sections: Profile sections
        config: Configuration naming the required sections

    Returns:
        Integer percentage; 100 when nothing is required
    """
    required_ids = set(config.required_sections)
    required = [section for section in sections if section.id in required_ids]

    if not required:
        return 100

    completed = sum(1 for section in required if section.status == SectionStatus.COMPLETE)
    # Half-up rounding
    return int(100 * completed / len(required) + 0.5)


def rank_sections_needing_attention(sections: Iterable[ProfileSection]) -> List[ProfileSection]:
    """
    Sections that need updating or are missing, highest priority first.

    The sort is stable, so equal priorities keep their catalog order.
    """
    needing = [section for section in sections if section.status in ATTENTION_STATUSES]
    return sorted(needing, key=lambda section: PRIORITY_WEIGHTS[section.priority], reverse=True)


def most_critical_section(sections: Iterable[ProfileSection]) -> Optional[ProfileSection]:
    ranked = rank_sections_needing_attention(sections)
    return ranked[0] if ranked else None


def sections_by_status(sections: Iterable[ProfileSection], status: SectionStatus) -> List[ProfileSection]:
    return [section for section in sections if section.status == status]


def update_section_status(sections: Iterable[ProfileSection], section_id: str,
                          status: SectionStatus, now: Optional[datetime] = None) -> List[ProfileSection]:
    """
    Set a section's completion status and stamp its last-updated time.

    Args:
        sections: Profile sections
        section_id: Id of the section to update
        status: New completion status
        now: Timestamp to stamp (defaults to current UTC time)

    Returns:
        New list of sections
    """
    timestamp = now or datetime.now(timezone.utc)
    return [
        replace(section, status=status, last_updated=timestamp) if section.id == section_id else section
        for section in sections
    ]


def default_sections(catalog: Iterable[Mapping[str, Any]]) -> List[ProfileSection]:
    """
    Build the base section list from catalog entries.

    Args:
        catalog: Entries with id, title and optionally priority, status,
            description and last_updated

    Returns:
        ProfileSection list in catalog order
    """
    sections = []
    for entry in catalog:
        sections.append(ProfileSection(
            id=entry["id"],
            title=entry.get("title", entry["id"].replace("_", " ").title()),
            status=SectionStatus(entry.get("status", SectionStatus.MISSING.value)),
            priority=SectionPriority(entry.get("priority", SectionPriority.MEDIUM.value)),
            description=entry.get("description"),
            last_updated=entry.get("last_updated"),
        ))
    return sections


class SectionVisibilityEngine:
    """
    Section visibility and completion bound to one configuration.

    The archetype table and section catalog are read once from the
    configuration handed in; nothing is read from module state.
    """

    def __init__(self, config: Dict[str, Any], strict_archetypes: bool = False):
        """
        Initialize engine with configuration.

        Args:
            config: Engine configuration (see load_profile_config)
            strict_archetypes: Raise on unknown archetypes instead of
                falling back to "general"
        """
        self.config = config
        self.archetypes = config.get("archetypes", {})
        self.catalog = config.get("sections", {}).get("catalog", [])
        self.strict_archetypes = strict_archetypes

        logger.info(f"Initialized SectionVisibilityEngine with {len(self.archetypes)} archetypes")

    def resolve_section_config(self, archetype: Optional[str]) -> SectionConfig:
        return resolve_section_config(archetype, self.archetypes, strict=self.strict_archetypes)

    def base_sections(self) -> List[ProfileSection]:
        return default_sections(self.catalog)

    def visible_sections(self, sections: Iterable[ProfileSection], archetype: Optional[str],
                         overlay: Optional[HospitalPermissionOverlay] = None,
                         section_config: Optional[SectionConfig] = None) -> List[ProfileSection]:
        """
        Apply archetype configuration, then the hospital overlay.

        Args:
            sections: Base section catalog
            archetype: Hospital archetype
            overlay: Hospital permission overlay (optional)
            section_config: Already resolved configuration for the
                archetype; resolved here when omitted

        Returns:
            Visible sections with final visibility and requirement flags
        """
        if section_config is None:
            section_config = self.resolve_section_config(archetype)

        result = apply_config(sections, section_config)
        if overlay is not None:
            result = apply_permission_overlay(result, overlay)
        return result
