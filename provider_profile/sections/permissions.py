"""
Hospital permission resolution for ProviderProfile.

Maps a provider's organisation name to a hospital id, fetches that
hospital's section permission overlay from a permission store, and falls
back to an injected default overlay when no hospital-specific record is
available.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from thefuzz import fuzz, process

from provider_profile.sections.models import HospitalPermissionOverlay

logger = logging.getLogger(__name__)


class PermissionStore:
    """
    Source of hospital permission overlays.

    Implementations return a {section_id: {is_visible, is_required}}
    mapping for a hospital id, or None when the hospital has no record.
    """

    def get_hospital_permissions(self, hospital_id: str) -> Optional[Mapping[str, Mapping[str, Any]]]:
        raise NotImplementedError


class InMemoryPermissionStore(PermissionStore):
    """Permission store backed by a dictionary, e.g. the configuration file."""

    def __init__(self, hospitals: Optional[Mapping[str, Mapping[str, Mapping[str, Any]]]] = None):
        self.hospitals = dict(hospitals or {})

    def get_hospital_permissions(self, hospital_id: str) -> Optional[Mapping[str, Mapping[str, Any]]]:
        return self.hospitals.get(hospital_id)


class HospitalPermissionResolver:
    """
    Resolves the permission overlay that applies to an organisation.

    Organisation names are matched exactly first, then fuzzily so that
    misspellings such as "Clevland Clinic" still find their
    hospital.
    """

    def __init__(self, config: Dict[str, Any], store: Optional[PermissionStore] = None):
        """
        Initialize resolver with configuration.

        Args:
            config: Engine configuration (see load_profile_config)
            store: Permission store (defaults to the hospitals listed in
                the configuration)
        """
        permissions_config = config.get("permissions", {})
        self.hospital_codes = dict(permissions_config.get("hospital_codes", {}))
        self.fuzzy_match_threshold = permissions_config.get("fuzzy_match_threshold", 90)
        self.default_overlay = HospitalPermissionOverlay.from_dict(permissions_config.get("default", {}))
        self.store = store or InMemoryPermissionStore(permissions_config.get("hospitals", {}))

        logger.info(f"Initialized HospitalPermissionResolver with {len(self.hospital_codes)} organisations")

    def resolve_hospital_id(self, organization: Optional[str]) -> Optional[str]:
        """
        Map an organisation name to a hospital id.

        Args:
            organization: Organisation name from the provider's profile

        Returns:
            Hospital id, or None if the organisation is unknown
        """
        if not organization or not organization.strip():
            return None

        organization = organization.strip()
        if organization in self.hospital_codes:
            return self.hospital_codes[organization]

        lowered = {name.lower(): hospital_id for name, hospital_id in self.hospital_codes.items()}
        if organization.lower() in lowered:
            return lowered[organization.lower()]

        if not self.hospital_codes or self.fuzzy_match_threshold >= 100:
            return None

        best_match = process.extractOne(organization, list(self.hospital_codes.keys()),
                                        scorer=fuzz.ratio)
        if best_match and best_match[1] >= self.fuzzy_match_threshold:
            logger.info(f"Matched organisation to '{best_match[0]}' (score {best_match[1]})")
            return self.hospital_codes[best_match[0]]

        return None

    def get_permissions(self, organization: Optional[str]) -> HospitalPermissionOverlay:
        """
        Get the permission overlay for an organisation.

        The default overlay is returned when the organisation is empty or
        unmapped, when the store has no record for the hospital, or when
        the store fails.

        Args:
            organization: Organisation name from the provider's profile

        Returns:
            HospitalPermissionOverlay
        """
        if not organization:
            return self.default_overlay

        hospital_id = self.resolve_hospital_id(organization)
        if hospital_id is None:
            logger.warning(f"No hospital mapping found for: {organization}")
            return self.default_overlay

        try:
            permissions = self.store.get_hospital_permissions(hospital_id)
        except Exception as e:
            logger.error(f"Error fetching hospital permissions for {hospital_id}: {e}")
            return self.default_overlay

        if not permissions:
            logger.warning(f"No permissions stored for hospital {hospital_id}, using defaults")
            return self.default_overlay

        return HospitalPermissionOverlay.from_dict(permissions, hospital_id=hospital_id)


def can_access_section(section_id: str, overlay: HospitalPermissionOverlay) -> bool:
    """A section without an overlay entry is accessible."""
    permission = overlay.get(section_id)
    return permission.is_visible if permission is not None else True


def navigation_restrictions(overlay: HospitalPermissionOverlay) -> Dict[str, List[str]]:
    """
    Split overlay sections into allowed and restricted navigation targets.

    Args:
        overlay: Hospital permission overlay

    Returns:
        Dictionary with allowed_sections and restricted_sections
    """
    allowed_sections = []
    restricted_sections = []

    for section_id, permission in overlay.items():
        if permission.is_visible:
            allowed_sections.append(section_id)
        else:
            restricted_sections.append(section_id)

    return {
        "allowed_sections": allowed_sections,
        "restricted_sections": restricted_sections,
    }


def permission_summary(overlay: HospitalPermissionOverlay) -> Dict[str, Any]:
    """
    Summarise an overlay for the administration view.

    Required sections are only counted when they are also visible.

    Args:
        overlay: Hospital permission overlay

    Returns:
        Dictionary with visible_count, required_count, total_sections and
        hidden_sections
    """
    visible_count = 0
    required_count = 0
    hidden_sections = []

    for section_id, permission in overlay.items():
        if permission.is_visible:
            visible_count += 1
            if permission.is_required:
                required_count += 1
        else:
            hidden_sections.append(section_id)

    return {
        "visible_count": visible_count,
        "required_count": required_count,
        "total_sections": len(overlay),
        "hidden_sections": hidden_sections,
    }
