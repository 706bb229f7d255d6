"""Errors surfaced to the admin as flashed banners."""


class BlogError(Exception):
    """Base class; ``str(err)`` is safe to show to the user."""


class AuthRequiredError(BlogError):
    def __init__(self, message: str = "You must be signed in to do that.") -> None:
        super().__init__(message)


class ValidationError(BlogError):
    pass


class AuthError(BlogError):
    """The auth provider rejected a request."""

    def __init__(self, message: str, code: str = "") -> None:
        super().__init__(message)
        self.code = code


class RemoteError(BlogError):
    """A document store or blob store call failed."""
