"""
Record transformation modules for ProviderProfile.

Maps signup input, NPI Registry results and upstream content metadata
into canonical records and payloads.
"""
