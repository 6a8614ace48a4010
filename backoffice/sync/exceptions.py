class SyncError(Exception):
    """Base error for the legacy inventory sync"""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ExternalSourceError(SyncError):
    """The legacy database could not be reached or queried"""


class RowProcessingError(SyncError):
    """One legacy row failed; the run records it and moves on"""

    def __init__(self, barcode, cause):
        self.barcode = barcode
        self.cause = cause
        super().__init__(f"Error syncing {barcode}: {cause}")
