# Copyright Krafter SAS <developer@krafter.io>
# MIT License (see LICENSE file).


class DocRefsError(Exception):
    """Base class of every error raised by docrefs."""

    pass


class ConfigurationError(DocRefsError, ValueError):
    """Invalid relation or search index declaration."""

    pass


class UnimplementedActionError(DocRefsError, NotImplementedError):
    """An action without concrete behavior was executed."""

    pass


class StorageError(DocRefsError):
    """Error raised by the document store."""

    pass


class StoreNotConfiguredError(StorageError):
    """No document store is registered for a model."""

    pass


class TransactionConflictError(StorageError):
    """A document read in the transaction was modified before commit."""

    pass


__all__ = [
    "DocRefsError",
    "ConfigurationError",
    "UnimplementedActionError",
    "StorageError",
    "StoreNotConfiguredError",
    "TransactionConflictError",
]
