"""
User Input Errors

Raised when a request cannot be served because of what the user asked
for, rather than because a dependency failed. The API maps these to 400.
"""


class UserInputError(Exception):
    """Base class for request-level errors the user can fix."""
    pass


class NoActiveConversationError(UserInputError):
    """There is no active conversation with messages to act on."""
    pass


class EmptyInputError(UserInputError):
    """Required text was empty or whitespace."""
    pass


class EmptyNoteError(EmptyInputError):
    """A quick note had no content."""
    pass


class InvalidFilterError(UserInputError):
    """A search filter named an unknown value."""
    pass


class ExtractionInProgressError(UserInputError):
    """An extraction is already running for this user."""
    pass
