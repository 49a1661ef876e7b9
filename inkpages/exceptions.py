class InkPagesError(Exception):
    """Base class for domain errors raised by the blog service."""


class PostNotFoundError(InkPagesError):
    pass


class PostValidationError(InkPagesError):
    pass


class ImageValidationError(InkPagesError):
    pass


class ImageProcessingError(InkPagesError):
    pass


class LocalStorageError(InkPagesError):
    """The local slot store could not be written."""


class LocalStorageQuotaExceeded(LocalStorageError):
    pass


class InvalidCredentialsError(InkPagesError):
    pass


class IdentityServiceError(InkPagesError):
    pass


class LoginRequired(InkPagesError):
    """Raised by writer-only dependencies; the app answers with a redirect to /login."""


class ImageUploadError(InkPagesError):
    pass
