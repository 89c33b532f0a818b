"""
Blob stores for uploaded PDF bytes.

Two backends share one shape (`put`, `delete`, `exists`):

- `LocalBlobStore` writes files into a directory the app serves back under a
  URL prefix.
- `SupabaseBlobStore` writes into a Supabase Storage bucket and hands out the
  bucket's public URL.

A blob reference is whatever `put` returned; the blob name is always its last
path segment. Names are generated by the caller and never come from user
input, but both backends still refuse anything that is not a bare file name.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Protocol

from papervault.core.exceptions import StorageFailure

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def blob_name_from_ref(blob_ref: str) -> str:
    """Extracts the blob name (last path segment) from a reference."""
    name = blob_ref.rstrip("/").rsplit("/", 1)[-1]
    _check_blob_name(name)
    return name


def _check_blob_name(name: str) -> None:
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"Invalid blob name: {name!r}")


class BlobStore(Protocol):
    async def put(
        self, name: str, content: bytes, content_type: str = PDF_CONTENT_TYPE
    ) -> str:
        """Stores the bytes and returns a retrievable reference."""
        ...

    async def delete(self, blob_ref: str) -> bool:
        """Removes the blob. Returns False if it was already gone."""
        ...

    async def exists(self, blob_ref: str) -> bool:
        ...


class LocalBlobStore:
    """Blob store on the local filesystem."""

    def __init__(self, root_dir: str, url_prefix: str = "/uploads"):
        self.root_dir = Path(root_dir)
        self.url_prefix = "/" + url_prefix.strip("/")
        self.root_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Local blob store ready at {self.root_dir} ({self.url_prefix})")

    def _path_for(self, name: str) -> Path:
        _check_blob_name(name)
        return self.root_dir / name

    async def put(
        self, name: str, content: bytes, content_type: str = PDF_CONTENT_TYPE
    ) -> str:
        path = self._path_for(name)
        try:
            await asyncio.to_thread(path.write_bytes, content)
        except OSError as e:
            logger.error(f"Failed writing blob {name} to {path}: {e}")
            raise StorageFailure(f"Failed storing blob {name}.") from e
        logger.debug(f"Stored blob {name} ({len(content)} bytes)")
        return f"{self.url_prefix}/{name}"

    async def delete(self, blob_ref: str) -> bool:
        path = self._path_for(blob_name_from_ref(blob_ref))
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed deleting blob {path}: {e}")
            raise StorageFailure(f"Failed deleting blob {path.name}.") from e
        return True

    async def exists(self, blob_ref: str) -> bool:
        path = self._path_for(blob_name_from_ref(blob_ref))
        return await asyncio.to_thread(path.is_file)


class SupabaseBlobStore:
    """Blob store on a Supabase Storage bucket.

    The supabase-py client is synchronous, so every call runs in a worker
    thread.
    """

    def __init__(self, client: Any, bucket: str = "papers"):
        self.client = client
        self.bucket = bucket

    def _bucket(self) -> Any:
        return self.client.storage.from_(self.bucket)

    async def put(
        self, name: str, content: bytes, content_type: str = PDF_CONTENT_TYPE
    ) -> str:
        _check_blob_name(name)
        try:
            await asyncio.to_thread(
                self._bucket().upload,
                path=name,
                file=content,
                file_options={"content-type": content_type},
            )
            public_url = await asyncio.to_thread(self._bucket().get_public_url, name)
        except Exception as e:
            logger.error(f"Failed uploading blob {name} to bucket {self.bucket}: {e}")
            raise StorageFailure(f"Failed storing blob {name}.") from e
        logger.debug(f"Uploaded blob {name} ({len(content)} bytes) to {self.bucket}")
        return str(public_url)

    async def delete(self, blob_ref: str) -> bool:
        name = blob_name_from_ref(blob_ref)
        try:
            removed = await asyncio.to_thread(self._bucket().remove, [name])
        except Exception as e:
            logger.error(f"Failed removing blob {name} from bucket {self.bucket}: {e}")
            raise StorageFailure(f"Failed deleting blob {name}.") from e
        # remove() reports the objects it actually deleted
        return bool(removed)

    async def exists(self, blob_ref: str) -> bool:
        name = blob_name_from_ref(blob_ref)
        try:
            entries = await asyncio.to_thread(
                self._bucket().list, "", {"search": name}
            )
        except Exception as e:
            logger.error(f"Failed listing bucket {self.bucket}: {e}")
            raise StorageFailure(f"Failed looking up blob {name}.") from e
        return any(entry.get("name") == name for entry in entries or [])
