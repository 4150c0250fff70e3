"""
ProviderProfile - Provider Content Curation & Visibility Engine

Validates externally sourced identifiers, manages the review lifecycle of
discovered publications, clinical trials and media articles, and computes
per-hospital section visibility and profile completion.
"""

__version__ = "1.0.0"
__author__ = "ProviderProfile Team"
