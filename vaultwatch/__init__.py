"""
VaultWatch
Document Activity Tracking for markdown vaults
"""
__version__ = "1.0.0"
