"""File content reading and writing."""
import os
import tempfile
from pathlib import Path
from typing import Union

import aiofiles
import aiofiles.os

from filehost.infrastructure.logging import get_logger

from .mime import DEFAULT_BINARY_TYPE, DEFAULT_TEXT_TYPE, guess_mime_type, is_binary_mime
from .storage_types import (
    BinaryContent,
    InvalidOperationError,
    NodeNotFoundError,
    NotTextError,
    StorageIOError,
)

logger = get_logger(__name__)


class ContentAccessor:
    """Handles file reads and writes on resolved paths"""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    async def read_text(self, path: Path) -> str:
        """
        Read a text file

        Raises:
            NotTextError: If the extension maps to a binary type or the bytes do not decode
            NodeNotFoundError: If the file does not exist
        """
        mime_type = guess_mime_type(path, DEFAULT_TEXT_TYPE)
        if is_binary_mime(mime_type):
            raise NotTextError(str(path), mime_type)

        try:
            async with aiofiles.open(path, "r", encoding=self.encoding, newline="") as f:
                return await f.read()
        except UnicodeDecodeError:
            raise NotTextError(str(path), mime_type)
        except FileNotFoundError:
            raise NodeNotFoundError(str(path))
        except IsADirectoryError:
            raise InvalidOperationError(str(path), "Cannot read a directory")
        except OSError as e:
            logger.error("file_read_failed", path=str(path), error=str(e))
            raise StorageIOError(str(path), str(e))

    async def read_binary(self, path: Path) -> BinaryContent:
        """Read raw bytes without any decoding"""
        try:
            stat = await aiofiles.os.stat(path)
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except FileNotFoundError:
            raise NodeNotFoundError(str(path))
        except IsADirectoryError:
            raise InvalidOperationError(str(path), "Cannot read a directory")
        except OSError as e:
            logger.error("file_read_failed", path=str(path), error=str(e))
            raise StorageIOError(str(path), str(e))

        return BinaryContent(
            data=data,
            mime_type=guess_mime_type(path, DEFAULT_BINARY_TYPE),
            size=stat.st_size,
        )

    def encode(self, content: Union[str, bytes]) -> bytes:
        if isinstance(content, str):
            return content.encode(self.encoding)
        return bytes(content)

    async def write(self, path: Path, content: Union[str, bytes]) -> bool:
        """
        Write content, creating missing parent directories first

        The bytes land in a temporary file next to the target which is then
        renamed over it, so readers never observe a half-written file.
        """
        path = Path(path)
        data = self.encode(content)

        if await aiofiles.os.path.isdir(path):
            raise InvalidOperationError(str(path), "Cannot write to a directory")

        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
        except (FileExistsError, NotADirectoryError):
            raise InvalidOperationError(str(path), "A parent segment is a file")
        except OSError as e:
            logger.error("parent_directory_create_failed", path=str(path.parent), error=str(e))
            raise StorageIOError(str(path.parent), str(e))

        tmp_path = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".upload-")
            os.close(fd)
            tmp_path = Path(tmp_name)

            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)

            os.chmod(tmp_path, 0o644)
            await aiofiles.os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            logger.error("file_write_failed", path=str(path), error=str(e))
            raise StorageIOError(str(path), str(e))
        finally:
            if tmp_path is not None:
                try:
                    await aiofiles.os.remove(tmp_path)
                except OSError as e:
                    logger.warning("temp_file_cleanup_failed", path=str(tmp_path), error=str(e))

        logger.debug("file_written", path=str(path), size=len(data))
        return True
