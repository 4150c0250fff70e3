"""
Identifier validation modules for ProviderProfile.

Pure validators for NPI numbers, NCT trial ids, PubMed ids and article URLs.
"""
