"""
Profile section modules for ProviderProfile.

Archetype section configuration, hospital permission overlays and
profile completion scoring.
"""
