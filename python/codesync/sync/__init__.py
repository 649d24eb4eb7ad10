"""
Background synchronization of changed files.
"""

from .coordinator import SyncCoordinator, SyncState, is_retryable
from .upload import HttpUploader, Uploader, UploadFile, UploadResult, load_upload_files

__all__ = [
    "HttpUploader",
    "SyncCoordinator",
    "SyncState",
    "UploadFile",
    "UploadResult",
    "Uploader",
    "is_retryable",
    "load_upload_files",
]
