"""
Content curation modules for ProviderProfile.

Shared review lifecycle for publications, clinical trials and media
articles, plus review-queue statistics.
"""
