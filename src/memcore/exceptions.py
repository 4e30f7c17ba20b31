# src/memcore/exceptions.py
"""
Custom exceptions for the memcore library.

This module defines a hierarchy of custom exception classes so that callers
can tell unrecoverable setup failures (an embedding model that cannot load)
apart from write failures and malformed serialized data.

Expected absence (an unknown memory ID) is never an exception in memcore:
stores and the manager signal it with ``None`` / ``False`` return values.
"""


class MemCoreError(Exception):
    """Base class for all memcore specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in memcore."):
        super().__init__(message)

class ConfigError(MemCoreError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class EmbeddingError(MemCoreError):
    """Raised for errors related to embedding generation."""
    def __init__(self, model_name: str = "Unknown", message: str = "Embedding generation error."):
        self.model_name = model_name
        super().__init__(f"Error with embedding model '{model_name}': {message}")

class EngineUnavailableError(EmbeddingError):
    """
    Raised when the backing embedding model failed to load.

    This is fatal for the engine instance: it is raised at construction time
    and again by every subsequent embed call on the same instance.
    """
    def __init__(self, model_name: str = "Unknown", message: str = "Embedding engine not ready."):
        super().__init__(model_name, message)

class StorageError(MemCoreError):
    """Base class for errors related to memory storage operations."""
    def __init__(self, message: str = "Storage error."):
        super().__init__(message)

class StoreWriteError(StorageError):
    """Raised by the manager when a store write reports failure."""
    def __init__(self, record_id: str = "Unknown", message: str = "Failed to store memory."):
        self.record_id = record_id
        super().__init__(f"{message} Memory ID: '{record_id}'")

class MalformedRecordError(StorageError):
    """Raised when a serialized memory record cannot be deserialized."""
    def __init__(self, message: str = "Malformed memory record.", field: str | None = None):
        self.field = field
        if field:
            message = f"{message} Field: '{field}'"
        super().__init__(message)

class ToolError(MemCoreError):
    """Raised for unknown tools or invalid tool arguments in the agent toolset."""
    def __init__(self, tool_name: str = "Unknown", message: str = "Tool invocation error."):
        self.tool_name = tool_name
        super().__init__(f"Error with tool '{tool_name}': {message}")
