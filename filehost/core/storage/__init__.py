"""Per-tenant virtual filesystem"""
from .content import ContentAccessor
from .directory_tree import DirectoryTree
from .mime import MIME_TYPES, guess_mime_type, is_binary_mime
from .path_resolver import PathResolver
from .quota import QuotaTracker
from .storage_types import (
    BinaryContent,
    DiskUsage,
    FileTooLargeError,
    InvalidOperationError,
    InvalidPathError,
    Node,
    NodeExistsError,
    NodeKind,
    NodeNotFoundError,
    NotTextError,
    QuotaExceededError,
    StorageError,
    StorageIOError,
)

__all__ = [
    'ContentAccessor',
    'DirectoryTree',
    'PathResolver',
    'QuotaTracker',
    'MIME_TYPES',
    'guess_mime_type',
    'is_binary_mime',
    'BinaryContent',
    'DiskUsage',
    'Node',
    'NodeKind',
    'StorageError',
    'InvalidPathError',
    'NodeNotFoundError',
    'NodeExistsError',
    'InvalidOperationError',
    'NotTextError',
    'QuotaExceededError',
    'FileTooLargeError',
    'StorageIOError',
]
