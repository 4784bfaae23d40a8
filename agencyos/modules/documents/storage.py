# agencyos/modules/documents/storage.py
import asyncio
import re
from pathlib import Path
from typing import Tuple

from loguru import logger

from agencyos.core.config import settings


def sanitize_file_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", name)


class DocumentStorage:
    """Generated files on local disk under `<base_dir>/<organization_id>/`."""

    def __init__(self, base_dir: str | Path):
        self.base_dir = Path(base_dir).resolve()

    def _resolve(self, relative_path: str) -> Path:
        path = (self.base_dir / relative_path).resolve()
        if not path.is_relative_to(self.base_dir):
            raise ValueError(f"Path escapes the storage directory: {relative_path}")
        return path

    async def write(self, organization_id: str, file_name: str, content: str) -> Tuple[str, int]:
        """Stores `content`; returns the relative path and the size in bytes."""
        relative_path = f"{sanitize_file_name(organization_id)}/{file_name}"
        path = self._resolve(relative_path)
        data = content.encode("utf-8")

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        return relative_path, len(data)

    async def read(self, relative_path: str) -> str:
        path = self._resolve(relative_path)
        return await asyncio.to_thread(path.read_text, "utf-8")

    async def delete(self, relative_path: str) -> bool:
        path = self._resolve(relative_path)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            logger.warning(f"Document file already missing: {relative_path}")
            return False
        return True


def get_document_storage() -> DocumentStorage:
    return DocumentStorage(settings.DOCUMENTS_STORAGE_DIR)
