"""File and folder operations on Yandex Disk."""

from .base import finish_async_operation, operation_error, require
from .files import FileOperation, execute_file_operation
from .folders import FolderOperation, execute_folder_operation

__all__ = [
    "FileOperation",
    "FolderOperation",
    "execute_file_operation",
    "execute_folder_operation",
    "finish_async_operation",
    "operation_error",
    "require"
]
