"""Output file writer."""

from pathlib import Path

import aiofiles


async def write_document(path: Path, content: str, suffix: str | None = None) -> Path:
    """Write one document, creating parent directories.

    When ``suffix`` is given and the path has no extension, it is added.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if suffix and not path.suffix:
        path = path.with_suffix(suffix)

    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(content)

    return path
