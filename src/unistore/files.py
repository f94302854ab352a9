"""File-persistence protocol and the local-disk implementation."""

from __future__ import annotations

import asyncio
import functools
from pathlib import Path
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class FileSystem(Protocol):
    """Whole-file access used by the store. All methods are coroutines."""

    async def read_text(self, path: Path) -> str:
        """Return the full contents of ``path``."""
        ...

    async def write_text(self, path: Path, text: str) -> None:
        """Replace the contents of ``path`` with ``text``."""
        ...

    async def exists(self, path: Path) -> bool: ...

    async def make_dirs(self, path: Path) -> None:
        """Create ``path`` and any missing parents. No-op if it exists."""
        ...

    async def list_files(self, directory: Path, pattern: str) -> list[Path]:
        """Files in ``directory`` matching ``pattern``. Empty if it doesn't exist."""
        ...

    async def remove(self, path: Path) -> None: ...


class LocalFileSystem:
    """FileSystem backed by the local disk.

    Blocking calls run in the loop's default executor so the event loop
    stays responsive while large documents are read or written.
    """

    encoding = "utf-8"

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))

    async def read_text(self, path: Path) -> str:
        return await self._run(path.read_text, encoding=self.encoding)

    async def write_text(self, path: Path, text: str) -> None:
        await self._run(path.write_text, text, encoding=self.encoding)

    async def exists(self, path: Path) -> bool:
        return await self._run(path.exists)

    async def make_dirs(self, path: Path) -> None:
        await self._run(path.mkdir, parents=True, exist_ok=True)

    async def list_files(self, directory: Path, pattern: str) -> list[Path]:
        def _list() -> list[Path]:
            if not directory.is_dir():
                return []
            return sorted(p for p in directory.glob(pattern) if p.is_file())

        return await self._run(_list)

    async def remove(self, path: Path) -> None:
        await self._run(path.unlink)
