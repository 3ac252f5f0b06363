import hashlib
from pathlib import Path
from typing import Optional

from .. import config


class FileHasher:
    def fingerprint(self, path: Path, file_size: Optional[int] = None) -> str:
        """
        Computes a content identifier for the file.

        Strategy:
        1. If file < SPARSE_HASH_THRESHOLD:
           -> Full Read (SHA-256).
        2. Otherwise:
           -> Sparse Hash (Header + Middle + Footer + Size), prefixed 's-'.
              Good enough to address thumbnails without reading whole videos.
        """
        if file_size is None:
            file_size = path.stat().st_size

        if file_size < config.SPARSE_HASH_THRESHOLD:
            return self._full_sha256(path)
        return self._sparse_hash(path, file_size)

    def _full_sha256(self, path: Path) -> str:
        """Reads entire file."""
        h = hashlib.sha256()
        with open(path, 'rb') as f:
            while chunk := f.read(config.HASH_CHUNK_SIZE):
                h.update(chunk)
        return h.hexdigest()

    def _sparse_hash(self, path: Path, file_size: int) -> str:
        chunk_size = 4096
        h = hashlib.sha256()

        # Mixing in the size separates files that share sampled blocks
        h.update(str(file_size).encode('ascii'))

        with open(path, 'rb') as f:
            h.update(f.read(chunk_size))

            if file_size > chunk_size * 3:
                f.seek(file_size // 2)
                h.update(f.read(chunk_size))

            if file_size > chunk_size * 2:
                try:
                    f.seek(-chunk_size, 2)
                    h.update(f.read(chunk_size))
                except OSError:
                    # File shrank since it was stat'ed
                    pass

        return f"s-{h.hexdigest()}"
