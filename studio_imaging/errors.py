"""
Imaging Errors
Error classification for the fail-closed image operations
"""

DECODE_FAILURE = 'DECODE_FAILURE'
SURFACE_UNAVAILABLE = 'SURFACE_UNAVAILABLE'
ENCODE_FAILURE = 'ENCODE_FAILURE'


class ImagingError(Exception):
    """Base class for image processing failures surfaced to callers"""

    code = 'IMAGING_FAILURE'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'code': self.code, 'message': self.message}


class DecodeError(ImagingError):
    """Input bytes could not be decoded into a pixel surface"""

    code = DECODE_FAILURE


class SurfaceUnavailableError(ImagingError):
    """A working surface of the requested size could not be allocated"""

    code = SURFACE_UNAVAILABLE


class EncodeError(ImagingError):
    """A pixel surface could not be encoded back to bytes"""

    code = ENCODE_FAILURE
