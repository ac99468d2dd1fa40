"""Exception types for Bank Vocabulary."""


class BankVocabError(Exception):
    """Base class for all Bank Vocabulary errors."""


class StorageError(BankVocabError):
    """Raised when the persistent key-value store cannot be read or written."""


class RemoteStoreError(BankVocabError):
    """Raised when a request to the remote card store fails."""


class AuthError(BankVocabError):
    """Raised when the identity provider rejects a request."""

    def __init__(self, message: str, code: str = ""):
        super().__init__(message)
        self.code = code
