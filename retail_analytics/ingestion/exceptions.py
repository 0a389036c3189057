"""
Ingestion Exceptions
"""


class IngestionError(Exception):
    """Base class for ingestion failures"""


class DiscoveryError(IngestionError):
    """The export listing could not be read"""


class ScanFailedError(IngestionError):
    """A table scan failed before returning a single item"""


class UploadRejectedError(IngestionError):
    """The upload is invalid and was not stored"""
