# FILE: bukedlist/errors.py


class WishlistError(Exception):
    """Base class for every error the store raises."""


class ValidationError(WishlistError):
    """A required field is missing/empty or a value is out of range."""


class ImportFormatError(WishlistError):
    """An import document does not parse or does not have the export shape."""


class TransactionError(WishlistError):
    """The storage engine failed to commit (disk full, locked file, constraint...)."""


__all__ = [
    "WishlistError",
    "ValidationError",
    "ImportFormatError",
    "TransactionError",
]
