"""Custom exception classes for entities info report errors."""

from __future__ import annotations


class EntitiesInfoError(Exception):
    """Base exception for entities info failures."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class SelectionKeyError(EntitiesInfoError):
    """Raised when a selection key does not split into bundle and entity type."""

    def __init__(self, key: str, separator: str):
        super().__init__(f"Invalid selection key '{key}': expected '<bundle>{separator}<entity_type>'")
        self.key = key
        self.separator = separator


class EntityTypeNotFoundError(EntitiesInfoError):
    """Raised when the content store has no definition for an entity type."""

    def __init__(self, entity_type_id: str):
        super().__init__(f"The '{entity_type_id}' entity type does not exist.")
        self.entity_type_id = entity_type_id


class BundleNotFoundError(EntitiesInfoError):
    """Raised when a bundle is not defined for an entity type."""

    def __init__(self, entity_type_id: str, bundle: str):
        super().__init__(f"Bundle '{bundle}' does not exist for entity type '{entity_type_id}'.")
        self.entity_type_id = entity_type_id
        self.bundle = bundle


class ContentStoreError(EntitiesInfoError):
    """Raised when the content store backend fails."""

    def __init__(self, backend: str, message: str):
        super().__init__(f"Content store '{backend}' failed: {message}", transient=True)
        self.backend = backend


class TempStoreError(EntitiesInfoError):
    """Raised when reading or writing the private temp store fails."""

    def __init__(self, collection: str, message: str):
        super().__init__(f"Temp store '{collection}' failed: {message}", transient=True)
        self.collection = collection
