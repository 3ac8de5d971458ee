"""Error taxonomy for the ingest pipeline.

Every failure the pipeline can detect is one of these exceptions. Each
carries the HTTP status code and the message returned to the caller, so
the handler only has to catch ``IngestError`` and format it.
"""


class IngestError(Exception):
    """Base class for failures that map onto a caller-visible response"""
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MisconfigurationError(IngestError):
    status_code = 500
    default_message = 'Required env vars not configured'


class UnauthorizedError(IngestError):
    status_code = 401
    default_message = 'Not authorised'


class MissingMetadataError(IngestError):
    status_code = 400
    default_message = 'Missing required metadata'


class IdMismatchError(IngestError):
    status_code = 400
    default_message = 'Id Mismatch'


class UnrecognisedFileTypeError(IngestError):
    status_code = 400
    default_message = 'Unrecognised file type'


class CorruptInputError(IngestError):
    """Image bytes passed sniffing but could not be decoded"""
    status_code = 400
    default_message = 'Processing error: corrupt image data'


class ProcessingError(IngestError):
    status_code = 500
    default_message = 'Processing error'


class StorageError(IngestError):
    """put_object failed; the message carries the attempted metadata"""
    status_code = 500
    default_message = 'Save error'
