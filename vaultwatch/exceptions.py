# vaultwatch/exceptions.py

"""
Exception hierarchy for VaultWatch
"""


class VaultWatchError(Exception):
    """Base class for all VaultWatch errors"""


class StoreError(VaultWatchError):
    """A read or write against the activity store failed"""


class StoreNotInitializedError(StoreError):
    """The activity store was used before initialize() or after close()"""

    def __init__(self, message: str = "Activity store not initialized"):
        super().__init__(message)


class SamplingError(VaultWatchError):
    """Entity content could not be read for sampling"""

    def __init__(self, path: str, reason: str = "", missing: bool = False):
        self.path = path
        self.reason = reason
        self.missing = missing
        message = f"Cannot sample {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ExportError(VaultWatchError):
    """Export options are invalid"""
