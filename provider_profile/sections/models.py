"""
Profile section data types for ProviderProfile.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class SectionStatus(str, Enum):
    """Completion status of a profile section."""

    COMPLETE = "complete"
    NEEDS_UPDATE = "needs_update"
    MISSING = "missing"


class SectionPriority(str, Enum):
    """Attention priority of a profile section."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_WEIGHTS = {
    SectionPriority.HIGH: 3,
    SectionPriority.MEDIUM: 2,
    SectionPriority.LOW: 1,
}


@dataclass(frozen=True)
class ProfileSection:
    """A section of a provider profile as shown on the dashboard."""

    id: str
    title: str
    status: SectionStatus = SectionStatus.MISSING
    priority: SectionPriority = SectionPriority.MEDIUM
    is_visible: bool = True
    is_required: bool = False
    last_updated: Optional[datetime] = None
    description: Optional[str] = None
    hospital_specific: bool = False


@dataclass(frozen=True)
class SectionConfig:
    """Visible and required section ids for one hospital archetype."""

    visible_sections: Tuple[str, ...]
    required_sections: Tuple[str, ...]
    archetype: str = "general"

    @classmethod
    def from_dict(cls, archetype: str, data: Mapping[str, Any]) -> "SectionConfig":
        return cls(
            visible_sections=tuple(data.get("visible_sections", [])),
            required_sections=tuple(data.get("required_sections", [])),
            archetype=archetype,
        )


@dataclass(frozen=True)
class SectionPermission:
    """Per-hospital override for one section."""

    is_visible: bool
    is_required: bool


@dataclass(frozen=True)
class HospitalPermissionOverlay:
    """
    Section permissions for one hospital tenant.

    A section without an entry keeps whatever visibility it already has and
    is not forced to be required.
    """

    permissions: Dict[str, SectionPermission] = field(default_factory=dict)
    hospital_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Mapping[str, Any]]],
                  hospital_id: Optional[str] = None) -> "HospitalPermissionOverlay":
        """Build an overlay from a {section_id: {is_visible, is_required}} mapping."""
        permissions = {
            section_id: SectionPermission(
                is_visible=bool(entry.get("is_visible", True)),
                is_required=bool(entry.get("is_required", False)),
            )
            for section_id, entry in (data or {}).items()
        }
        return cls(permissions=permissions, hospital_id=hospital_id)

    def get(self, section_id: str) -> Optional[SectionPermission]:
        return self.permissions.get(section_id)

    def __contains__(self, section_id: str) -> bool:
        return section_id in self.permissions

    def __len__(self) -> int:
        return len(self.permissions)

    def items(self) -> List[Tuple[str, SectionPermission]]:
        return list(self.permissions.items())
