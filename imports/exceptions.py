class GalleryImportError(Exception):
    """Base class for failures raised by the import pipeline."""


class InvalidImportRequest(GalleryImportError):
    """
    Raised before any job is created when a required import parameter
    (gallery, course, assignment or initiator) is missing.
    """


class ExternalSourceFailure(GalleryImportError):
    """
    Raised by the Classroom/Drive client when a listing, profile, metadata
    or download request fails. Callers below the submission boundary record
    it against the job instead of letting it escape.
    """


class ConversionFailure(GalleryImportError):
    """Raised when an attachment cannot be decoded or re-encoded."""


class ImportJobFatal(GalleryImportError):
    """
    Raised to the caller when the job could not be defined at all, for
    example because the submissions could not be enumerated. The job has
    already been marked as ``error`` when this propagates.
    """

    def __init__(self, job_id, message):
        super().__init__(message)
        self.job_id = job_id
