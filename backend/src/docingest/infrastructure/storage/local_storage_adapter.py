"""Local filesystem storage adapter - StorageProvider on a directory tree.

Objects live at {base_dir}/{key}; metadata is written to a
{key}.metadata.json sidecar and removed together with the object.
"""

import asyncio
import json
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ...domain.documents.ports.object_storage_port import StorageProvider
from ...errors import StorageError

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".metadata.json"


class LocalStorageAdapter(StorageProvider):
    """Storage provider for local disk (development and single-node deployments).

    Example:
        storage = LocalStorageAdapter(base_dir="./uploads", public_base_url="http://localhost:3000")
        key = await storage.save(b"%PDF-1.7 ...", "documents/2025/01/31/<owner>/RG/x.pdf", "application/pdf")
    """

    def __init__(self, base_dir: str, public_base_url: str = "http://localhost:3000"):
        self.base_dir = Path(base_dir).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create storage directory {self.base_dir}: {e}")

        logger.info(f"Initialized local storage adapter: base_dir={self.base_dir}")

    @property
    def name(self) -> str:
        return "local"

    def _path_for(self, key: str) -> Path:
        if not key or key.startswith("/") or "\\" in key:
            raise StorageError(f"Invalid storage key: {key!r}")
        path = (self.base_dir / key).resolve()
        if self.base_dir not in path.parents:
            raise StorageError(f"Storage key escapes storage root: {key!r}")
        return path

    async def save(
        self,
        content: bytes,
        key: str,
        mime_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        path = self._path_for(key)
        sidecar = {
            **(metadata or {}),
            "mime_type": mime_type,
            "size_bytes": len(content),
            "stored_at": datetime.now(timezone.utc).isoformat(),
        }

        def _write():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
            Path(f"{path}{METADATA_SUFFIX}").write_text(
                json.dumps(sidecar, default=str, indent=2), encoding="utf-8"
            )

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error(f"Local write failed: key={key}, error={e}")
            raise StorageError(f"Failed to save file: {e}")

        logger.info(f"Stored file: key={key}, size={len(content)}, mime_type={mime_type}")
        return key

    async def read(self, key: str) -> bytes:
        path = self._path_for(key)
        if not await asyncio.to_thread(path.is_file):
            raise FileNotFoundError(f"File not found: {key}")
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(f"Failed to read file: {e}")

    async def delete(self, key: str) -> None:
        path = self._path_for(key)

        def _unlink():
            path.unlink(missing_ok=True)
            Path(f"{path}{METADATA_SUFFIX}").unlink(missing_ok=True)

        try:
            await asyncio.to_thread(_unlink)
        except OSError as e:
            logger.error(f"Local delete failed: key={key}, error={e}")
            raise StorageError(f"Failed to delete file: {e}")
        logger.info(f"Deleted file: key={key}")

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._path_for(key).is_file)

    async def list(self, prefix: str = "", max_keys: int = 1000) -> List[str]:
        def _scan():
            keys = []
            for path in self.base_dir.rglob("*"):
                if not path.is_file() or path.name.endswith(METADATA_SUFFIX):
                    continue
                key = path.relative_to(self.base_dir).as_posix()
                if key.startswith(prefix):
                    keys.append(key)
            return keys

        try:
            keys = await asyncio.to_thread(_scan)
        except OSError as e:
            raise StorageError(f"Failed to list files: {e}")
        return sorted(keys)[:max_keys]

    async def copy(self, source_key: str, destination_key: str) -> str:
        source = self._path_for(source_key)
        destination = self._path_for(destination_key)

        def _copy():
            if not source.is_file():
                raise FileNotFoundError(f"File not found: {source_key}")
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, destination)
            source_sidecar = Path(f"{source}{METADATA_SUFFIX}")
            if source_sidecar.is_file():
                shutil.copy2(source_sidecar, Path(f"{destination}{METADATA_SUFFIX}"))

        try:
            await asyncio.to_thread(_copy)
        except FileNotFoundError:
            raise
        except OSError as e:
            raise StorageError(f"Failed to copy file: {e}")

        logger.info(f"Copied file: {source_key} -> {destination_key}")
        return destination_key

    async def get_url(self, key: str, expires_in_seconds: Optional[int] = None) -> str:
        # Local URLs do not expire; expires_in_seconds is accepted for interface parity
        if not await self.exists(key):
            raise FileNotFoundError(f"File not found: {key}")
        return f"{self.public_base_url}/documents/files/{quote(key)}"
