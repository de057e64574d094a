"""File API models and schemas"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from filehost.core.storage import DiskUsage


class BaseResponse(BaseModel):
    """Base response model with common fields"""

    success: bool = Field(default=True, description="Whether the request was successful")
    message: Optional[str] = Field(None, description="Optional message")


class NodeResponse(BaseModel):
    """Directory entry"""

    name: str = Field(..., description="Final path segment")
    is_directory: bool = Field(..., description="Whether the entry is a directory")
    size: int = Field(..., description="Size in bytes, 0 for directories")
    mtime: datetime = Field(..., description="Last modification time")
    mime_type: Optional[str] = Field(None, description="Inferred MIME type of files")
    url: str = Field(..., description="Listing URL for directories, raw URL for files")
    content_url: Optional[str] = Field(None, description="Text content URL for files")


class DirectoryListingResponse(BaseModel):
    """Directory listing"""

    path: str = Field(..., description="Listed directory, tenant relative")
    parent_path: str = Field(..., description="Parent directory, tenant relative")
    entries: List[NodeResponse] = Field(default_factory=list)


class PathRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Tenant relative path")


class CreateFileRequest(BaseModel):
    path: str = Field(..., min_length=1, description="Tenant relative path of the new file")
    content: str = Field("", description="Text content")


class RenameRequest(BaseModel):
    old_path: str = Field(..., min_length=1, description="Current tenant relative path")
    new_path: str = Field(..., min_length=1, description="Target tenant relative path")


class FileWrittenResponse(BaseResponse):
    path: str = Field(..., description="Tenant relative path")
    name: str = Field(..., description="File name")
    size: int = Field(..., description="Bytes written")
    mime_type: str = Field(..., description="Inferred MIME type")
    written_at: datetime = Field(default_factory=datetime.utcnow)


class PathResponse(BaseResponse):
    path: str = Field(..., description="Tenant relative path")


class RenameResponse(BaseResponse):
    old_path: str
    new_path: str


class DiskUsageResponse(BaseModel):
    used: int = Field(..., description="Bytes used")
    total: int = Field(..., description="Storage ceiling in bytes")
    percentage: float = Field(..., description="Used share of the ceiling")

    @classmethod
    def from_usage(cls, usage: DiskUsage) -> "DiskUsageResponse":
        return cls(used=usage.used, total=usage.total, percentage=usage.percentage)
