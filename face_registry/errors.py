"""
Error taxonomy for the Face Registry service.

Each error carries the HTTP status the API layer answers with.
"""


class FaceRegistryError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FaceRegistryError):
    """Missing or malformed input, including undecodable images."""
    status_code = 400
    default_message = "Invalid request"


class NoFaceError(FaceRegistryError):
    """The image decoded fine but no face was found in it."""
    status_code = 400
    default_message = "No face detected in the image"


class NotFoundError(FaceRegistryError):
    status_code = 404
    default_message = "No user found"


class StorageError(FaceRegistryError):
    status_code = 500
    default_message = "Record store unavailable"


class ProcessingTimeoutError(FaceRegistryError, TimeoutError):
    status_code = 500
    default_message = "Face processing timed out"


class ServiceNotReadyError(FaceRegistryError):
    status_code = 503
    default_message = "Face model is still loading"
