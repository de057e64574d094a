"""Storage node types and exceptions"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class NodeKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class Node:
    """A file or directory inside a tenant root"""
    name: str
    path: Path
    kind: NodeKind
    size: int
    modified: datetime
    mime_type: Optional[str] = None

    @property
    def is_directory(self) -> bool:
        return self.kind is NodeKind.DIRECTORY


@dataclass
class BinaryContent:
    """Raw file bytes with the inferred MIME type"""
    data: bytes
    mime_type: str
    size: int


@dataclass
class DiskUsage:
    """Snapshot of a tenant's storage consumption"""
    used: int
    total: int

    @property
    def available(self) -> int:
        return max(0, self.total - self.used)

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return self.used / self.total * 100


class StorageError(Exception):
    """Base class for storage errors"""
    pass


class InvalidPathError(StorageError):
    """Path resolves outside the tenant sandbox or is malformed"""
    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid path '{path}': {reason}")
        self.path = path
        self.reason = reason


class NodeNotFoundError(StorageError):
    """File or directory does not exist"""
    def __init__(self, path: str):
        super().__init__(f"Path not found: {path}")
        self.path = path


class NodeExistsError(StorageError):
    """Destination already exists"""
    def __init__(self, path: str):
        super().__init__(f"Path already exists: {path}")
        self.path = path


class InvalidOperationError(StorageError):
    """Operation does not apply to this node"""
    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid operation on '{path}': {reason}")
        self.path = path
        self.reason = reason


class NotTextError(StorageError):
    """Binary content requested as text"""
    def __init__(self, path: str, mime_type: str):
        super().__init__(f"Not a text file: {path} ({mime_type})")
        self.path = path
        self.mime_type = mime_type


class QuotaExceededError(StorageError):
    """Write would push the tenant over the storage ceiling"""
    def __init__(self, used_bytes: int, limit_bytes: int, required_bytes: int):
        self.used_bytes = used_bytes
        self.limit_bytes = limit_bytes
        self.required_bytes = required_bytes

        available = max(0, limit_bytes - used_bytes)
        super().__init__(
            f"Quota exceeded: need {required_bytes} bytes, "
            f"only {available} bytes available "
            f"(quota: {limit_bytes}, used: {used_bytes})"
        )

    @property
    def usage(self) -> DiskUsage:
        return DiskUsage(used=self.used_bytes, total=self.limit_bytes)


class FileTooLargeError(StorageError):
    """Single file exceeds the per-file size limit"""
    def __init__(self, size_bytes: int, limit_bytes: int):
        super().__init__(
            f"File of {size_bytes} bytes exceeds the {limit_bytes} byte limit"
        )
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class StorageIOError(StorageError):
    """Underlying filesystem failure"""
    def __init__(self, path: str, reason: str):
        super().__init__(f"Filesystem error at '{path}': {reason}")
        self.path = path
        self.reason = reason
