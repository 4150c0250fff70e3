"""
Configuration utilities for ProviderProfile.

Provides loading, merging and validation of the engine configuration:
hospital archetypes, the base section catalog, default and per-hospital
permission overlays, and free-text sanitisation limits.
"""

import copy
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/profile_engine.yaml"


def load_profile_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """
    Load engine configuration from a YAML file.

    Values found in the file are merged over the defaults, so a file only
    needs to list what it changes.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    defaults = get_default_profile_config()

    config_file = Path(config_path)
    if not config_file.exists():
        logger.warning(f"Configuration file {config_path} not found, using defaults")
        return defaults

    try:
        with open(config_file, 'r') as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load configuration from {config_path}: {e}")
        return defaults

    if not isinstance(loaded, dict):
        logger.error(f"Configuration in {config_path} is not a mapping, using defaults")
        return defaults

    config = merge_configs(defaults, loaded)
    logger.info(f"Loaded profile configuration from {config_path}")
    return config


def get_default_profile_config() -> Dict[str, Any]:
    """
    Get default engine configuration.

    Returns:
        Default configuration dictionary
    """
    return {
        "archetypes": {
            "general": {
                "visible_sections": [
                    "professional_identity",
                    "education_training",
                    "practice_essentials",
                    "locations",
                    "biography",
                    "insurance_plans",
                    "medical_expertise",
                    "publications",
                    "clinical_trials",
                    "media_press",
                ],
                "required_sections": [
                    "professional_identity",
                    "education_training",
                    "practice_essentials",
                ],
            },
            "academic_medical_center": {
                "visible_sections": [
                    "professional_identity",
                    "education_training",
                    "practice_essentials",
                    "locations",
                    "biography",
                    "medical_expertise",
                    "publications",
                    "clinical_trials",
                ],
                "required_sections": [
                    "professional_identity",
                    "education_training",
                    "practice_essentials",
                    "publications",
                ],
            },
            "community_hospital": {
                "visible_sections": [
                    "professional_identity",
                    "education_training",
                    "practice_essentials",
                    "locations",
                    "biography",
                    "insurance_plans",
                    "medical_expertise",
                ],
                "required_sections": [
                    "professional_identity",
                    "education_training",
                    "practice_essentials",
                    "insurance_plans",
                ],
            },
        },
        "sections": {
            "catalog": [
                {"id": "professional_identity", "title": "Professional Identity", "priority": "high"},
                {"id": "education_training", "title": "Education & Training", "priority": "medium"},
                {"id": "practice_essentials", "title": "Practice Essentials", "priority": "medium"},
                {"id": "locations", "title": "Locations", "priority": "medium"},
                {"id": "biography", "title": "Biography", "priority": "medium"},
                {"id": "insurance_plans", "title": "Insurance Plans", "priority": "medium"},
                {"id": "publications", "title": "Publications", "priority": "low"},
                {"id": "clinical_trials", "title": "Clinical Trials", "priority": "low"},
                {"id": "media_press", "title": "Media & Press", "priority": "low"},
                {"id": "medical_expertise", "title": "Medical Expertise", "priority": "medium"},
            ]
        },
        "permissions": {
            "fuzzy_match_threshold": 90,
            "default": {
                "professional_identity": {"is_visible": True, "is_required": True},
                "education_training": {"is_visible": True, "is_required": True},
                "practice_essentials": {"is_visible": True, "is_required": True},
                "locations": {"is_visible": True, "is_required": False},
                "biography": {"is_visible": True, "is_required": False},
                "publications": {"is_visible": True, "is_required": False},
                "clinical_trials": {"is_visible": True, "is_required": False},
                "media_press": {"is_visible": True, "is_required": False},
                "medical_expertise": {"is_visible": True, "is_required": False},
            },
            "hospital_codes": {
                "University of Michigan": "hosp_1",
                "Cleveland Clinic": "hosp_2",
                "Mayo Clinic": "hosp_3",
            },
            "hospitals": {},
        },
        "sanitize": {
            "max_length": 1000
        },
        "phone": {
            "default_country_code": "US"
        },
    }


def validate_profile_config(config: Dict[str, Any]) -> bool:
    """
    Validate engine configuration.

    Args:
        config: Configuration dictionary

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ["archetypes", "sections", "permissions", "sanitize"]

    for section in required_sections:
        if section not in config:
            logger.error(f"Missing required configuration section: {section}")
            return False

    archetypes = config.get("archetypes", {})
    if "general" not in archetypes:
        logger.error("archetypes must define a 'general' archetype")
        return False

    for name, archetype in archetypes.items():
        for key in ("visible_sections", "required_sections"):
            if not isinstance(archetype.get(key, []), list):
                logger.error(f"archetypes.{name}.{key} must be a list")
                return False

    catalog = config.get("sections", {}).get("catalog", [])
    if not isinstance(catalog, list) or not all("id" in entry for entry in catalog):
        logger.error("sections.catalog must be a list of entries with an 'id'")
        return False

    permissions = config.get("permissions", {})
    threshold = permissions.get("fuzzy_match_threshold", 90)
    if not isinstance(threshold, (int, float)) or not 0 <= threshold <= 100:
        logger.error("permissions.fuzzy_match_threshold must be a number between 0 and 100")
        return False

    max_length = config.get("sanitize", {}).get("max_length", 1000)
    if not isinstance(max_length, int) or max_length <= 0:
        logger.error("sanitize.max_length must be a positive integer")
        return False

    logger.info("Configuration validation passed")
    return True


def merge_configs(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two configuration dictionaries.

    Args:
        base_config: Base configuration
        override_config: Override configuration

    Returns:
        Merged configuration
    """
    merged = copy.deepcopy(base_config)

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value

    return merged
