from __future__ import annotations


ATTACH_CERTIFICATE_HINT = (
    'No analysis report has been attached for this shift. '
    'Please attach the lab certificate PDF before viewing the report.'
)


class LabCertError(Exception):
    """Base class for every failure raised by the certificate pipeline."""


class InvalidMeasurement(LabCertError, ValueError):
    """A raw measurement that cannot be represented as a censored quantity."""


class AttachmentError(LabCertError):
    """The externally supplied lab certificate cannot be merged."""


class MissingAttachment(AttachmentError):
    def __init__(self, message: str = ATTACH_CERTIFICATE_HINT):
        super().__init__(message)


class CertificateNotFound(MissingAttachment):
    def __init__(self, key: str, message: str = ATTACH_CERTIFICATE_HINT):
        super().__init__(message)
        self.key = key


class CorruptAttachment(AttachmentError):
    def __init__(self, reason: str):
        super().__init__(
            'Could not merge the analysis report. The attached file may be invalid. ' + reason
        )
        self.reason = reason


class LayoutEngineFailure(LabCertError):
    """Rendering or asset loading failed; no partial document is produced."""


class PaginationMismatch(LayoutEngineFailure):
    def __init__(self, *, expected: int, actual: int):
        super().__init__(
            f'Primary section rendered to {actual} page(s) in the final pass '
            f'but {expected} page(s) when measured alone.'
        )
        self.expected = expected
        self.actual = actual
