"""
Upload collaborator: ships changed files to the indexing backend.

The coordinator only depends on the Uploader protocol. HttpUploader is the
production implementation; tests pass fakes or an httpx.MockTransport.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Protocol

import httpx

from codesync.errors import UploadErrorKind
from codesync.languages import detect_language

logger = logging.getLogger("codesync.sync")

UPLOAD_ENDPOINT = "/index/upload_files"

TokenProvider = Callable[[], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class UploadFile:
    """One file as sent to the backend."""

    path: str  # Relative to the workspace root
    content: str
    language: str


@dataclass(frozen=True)
class UploadResult:
    success: bool
    error: Optional[str] = None
    error_kind: Optional[UploadErrorKind] = None
    uploaded: int = 0

    @classmethod
    def ok(cls, uploaded: int) -> "UploadResult":
        return cls(success=True, uploaded=uploaded)

    @classmethod
    def failed(cls, error: str, kind: Optional[UploadErrorKind] = None) -> "UploadResult":
        return cls(success=False, error=error, error_kind=kind)


class Uploader(Protocol):
    async def upload(self, session_id: str, auth_token: str, files: list[UploadFile]) -> UploadResult:
        ...


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


async def load_upload_files(
    paths: Iterable[str], relative_path: Callable[[Path], str]
) -> list[UploadFile]:
    """
    Read files for upload.

    Unreadable and whitespace-only files are skipped with a warning.
    """
    files: list[UploadFile] = []
    for path_str in paths:
        path = Path(path_str)
        try:
            content = await asyncio.to_thread(_read_text, path)
        except OSError as e:
            logger.warning(f"Skipping unreadable file {path}: {e}")
            continue
        if not content.strip():
            logger.warning(f"Skipping empty file: {path}")
            continue
        files.append(UploadFile(relative_path(path), content, detect_language(path)))
    return files


async def no_token() -> Optional[str]:
    return None


class HttpUploader:
    """
    POSTs batches to <base_url>/index/upload_files with a bearer token.

    Error mapping:
    - connection errors, timeouts, HTTP 5xx -> TRANSIENT
    - any other HTTP error, empty batch, missing credentials -> PERMANENT
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            )
        return self._client

    async def upload(self, session_id: str, auth_token: str, files: list[UploadFile]) -> UploadResult:
        if not session_id:
            return UploadResult.failed("Session ID is required", UploadErrorKind.PERMANENT)
        if not auth_token:
            return UploadResult.failed("Valid token is required", UploadErrorKind.PERMANENT)
        if not files:
            logger.warning("No valid files prepared for upload")
            return UploadResult.failed("No valid files to upload", UploadErrorKind.PERMANENT)

        payload = {
            "session_id": session_id,
            "code_files": [
                {"path": f.path, "code": f.content, "language": f.language} for f in files
            ],
        }
        logger.debug(f"Uploading {len(files)} files to {self._base_url}{UPLOAD_ENDPOINT}")

        try:
            response = await self._get_client().post(
                UPLOAD_ENDPOINT,
                json=payload,
                headers={"Authorization": f"Bearer {auth_token}"},
            )
        except httpx.TimeoutException as e:
            return UploadResult.failed(f"Upload timeout: {e}", UploadErrorKind.TRANSIENT)
        except httpx.TransportError as e:
            return UploadResult.failed(f"Upload network error: {e}", UploadErrorKind.TRANSIENT)

        if response.is_success:
            logger.info(f"Successfully uploaded {len(files)} files to backend")
            return UploadResult.ok(len(files))

        detail = _error_detail(response)
        if response.status_code >= 500:
            return UploadResult.failed(f"Upload server error: {detail}", UploadErrorKind.TRANSIENT)
        return UploadResult.failed(f"Upload rejected: {detail}", UploadErrorKind.PERMANENT)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"HTTP error {response.status_code}"
