"""Tenant file API endpoints"""

from pathlib import Path, PurePosixPath
from typing import List, Optional
from urllib.parse import quote

from fastapi import (APIRouter, Depends, File, Form, Request, Response,
                     UploadFile, status)

from filehost.api.auth.dependencies import require_tenant_access
from filehost.api.dependencies import get_file_service
from filehost.api.models.files import (CreateFileRequest,
                                       DirectoryListingResponse,
                                       FileWrittenResponse, NodeResponse,
                                       PathRequest, PathResponse,
                                       RenameRequest, RenameResponse)
from filehost.core.config import settings
from filehost.core.services.file_service import FileService
from filehost.core.storage import FileTooLargeError, Node, guess_mime_type
from filehost.core.storage.mime import DEFAULT_TEXT_TYPE

router = APIRouter(prefix="/users/{tenant_id}", tags=["files"])


def _user_url(tenant_id: str, kind: str, relative: str) -> str:
    segments = "/".join(quote(segment, safe="") for segment in relative.strip("/").split("/"))
    return f"{settings.api_prefix}/users/{quote(tenant_id, safe='')}/{kind}/{segments}"


async def read_limited_body(request: Request, limit: int) -> bytes:
    """
    Read the request body, giving up as soon as it exceeds limit bytes

    Raises:
        FileTooLargeError: If Content-Length or the streamed body is over the limit
    """
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise FileTooLargeError(int(declared), limit)

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise FileTooLargeError(len(body), limit)

    return bytes(body)


async def read_limited_upload(file: UploadFile, limit: int) -> bytes:
    """Read an uploaded file, reading at most one byte past limit"""
    if file.size is not None and file.size > limit:
        raise FileTooLargeError(file.size, limit)

    data = await file.read(limit + 1)
    if len(data) > limit:
        raise FileTooLargeError(len(data), limit)

    return data


def _to_node_responses(tenant_id: str, directory: str, nodes: List[Node]) -> List[NodeResponse]:
    responses = []
    for node in nodes:
        relative = str(PurePosixPath(directory) / node.name)
        responses.append(
            NodeResponse(
                name=node.name,
                is_directory=node.is_directory,
                size=node.size,
                mtime=node.modified,
                mime_type=node.mime_type,
                url=_user_url(tenant_id, "files" if node.is_directory else "raw", relative),
                content_url=None if node.is_directory else _user_url(tenant_id, "content", relative),
            )
        )
    return responses


def _written_response(
    service: FileService, tenant_id: str, path: Path, size: int, message: str
) -> FileWrittenResponse:
    return FileWrittenResponse(
        message=message,
        path=service.relative_path(tenant_id, path),
        name=path.name,
        size=size,
        mime_type=guess_mime_type(path.name),
    )


@router.get(
    "/files",
    response_model=DirectoryListingResponse,
    summary="List tenant root",
)
@router.get(
    "/files/{path:path}",
    response_model=DirectoryListingResponse,
    summary="List directory",
    description="List a directory; 404 when the path is not a directory",
)
async def list_directory(
    path: str = "",
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    directory, nodes = await service.list_directory(tenant, path)

    relative = service.relative_path(tenant, directory)
    parent = str(PurePosixPath(relative).parent)

    return DirectoryListingResponse(
        path=relative,
        parent_path=parent,
        entries=_to_node_responses(tenant, relative, nodes),
    )


@router.post(
    "/upload",
    response_model=FileWrittenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload file",
)
async def upload_file(
    file: UploadFile = File(...),
    path: Optional[str] = Form(None),
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    """Store an uploaded file in the given directory, replacing any file of the same name"""
    data = await read_limited_upload(file, service.max_file_size_bytes)

    _, written, size = await service.upload(tenant, path or "", file.filename or "", data)

    return _written_response(service, tenant, written, size, "File uploaded")


@router.post(
    "/files/create",
    response_model=FileWrittenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create text file",
)
async def create_file(
    request: CreateFileRequest,
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    written, size = await service.write_file(
        tenant, request.path, request.content, overwrite=False
    )

    return _written_response(service, tenant, written, size, "File created")


@router.post(
    "/directory/create",
    response_model=PathResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create directory",
)
async def create_directory(
    request: PathRequest,
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    created = await service.create_directory(tenant, request.path)

    return PathResponse(
        message="Directory created", path=service.relative_path(tenant, created)
    )


@router.post(
    "/files/delete",
    response_model=PathResponse,
    summary="Delete file or directory",
)
async def delete_node(
    request: PathRequest,
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    deleted = await service.delete(tenant, request.path)

    return PathResponse(message="Deleted", path=service.relative_path(tenant, deleted))


@router.post(
    "/files/rename",
    response_model=RenameResponse,
    summary="Rename or move",
)
async def rename_node(
    request: RenameRequest,
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    old_path, new_path = await service.rename(tenant, request.old_path, request.new_path)

    return RenameResponse(
        message="Renamed",
        old_path=service.relative_path(tenant, old_path),
        new_path=service.relative_path(tenant, new_path),
    )


@router.get("/content/{path:path}", summary="Read text file")
async def read_text_file(
    path: str,
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    text = await service.read_text(tenant, path)

    return Response(content=text, media_type=guess_mime_type(path, DEFAULT_TEXT_TYPE))


@router.put(
    "/content/{path:path}",
    response_model=FileWrittenResponse,
    summary="Update text file",
)
async def update_text_file(
    path: str,
    request: Request,
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    """Replace a text file with the raw request body; quota is charged by the size change"""
    body = await read_limited_body(request, service.max_file_size_bytes)

    written, size = await service.update_text(tenant, path, body)

    return _written_response(service, tenant, written, size, "File updated")


@router.get("/raw/{path:path}", summary="Read file bytes")
async def read_raw_file(
    path: str,
    tenant: str = Depends(require_tenant_access),
    service: FileService = Depends(get_file_service),
):
    content = await service.read_binary(tenant, path)

    return Response(
        content=content.data,
        media_type=content.mime_type,
        headers={"Content-Disposition": "inline"},
    )
