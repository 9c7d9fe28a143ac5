from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TAG_DELIMITER = "_"
FALLBACK_HEADER = "File"
CURRENT_DIR_NAME = "."


def extract_tags(path: str | Path, headers: bool = False) -> tuple[str, ...]:
    """Split the parent directory name (headers) or the file stem (values) into tags."""

    p = Path(path)
    if headers:
        # bare file names live in the working directory
        text = p.parent.name or CURRENT_DIR_NAME
    else:
        text = p.stem
    return tuple(text.split(TAG_DELIMITER))


@dataclass(frozen=True)
class FileTags:
    path: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class TagSchema:
    headers: tuple[str, ...]
    files: tuple[FileTags, ...]
    fallback: bool = False

    @property
    def width(self) -> int:
        return len(self.headers)


def extract_file_tags(files: list[str]) -> TagSchema:
    """Extract tags for every file, falling back to one ``File`` pivot when counts disagree.

    Headers come from the first file's directory name; values from each file's
    stem. The consistency check runs over the whole list before any schema is
    chosen, so the fallback applies to every file or to none.
    """

    if not files:
        return TagSchema(headers=(), files=())

    headers = extract_tags(files[0], headers=True)
    values = [extract_tags(name) for name in files]
    consistent = all(len(tags) == len(headers) for tags in values)

    if consistent:
        return TagSchema(
            headers=headers,
            files=tuple(FileTags(path=str(name), values=tags) for name, tags in zip(files, values)),
        )

    mismatched = [str(name) for name, tags in zip(files, values) if len(tags) != len(headers)]
    logger.debug(
        "tag count mismatch for %d file(s) (expected %d from %r), using %r pivot",
        len(mismatched),
        len(headers),
        TAG_DELIMITER.join(headers),
        FALLBACK_HEADER,
    )
    return TagSchema(
        headers=(FALLBACK_HEADER,),
        files=tuple(FileTags(path=str(name), values=(Path(name).stem,)) for name in files),
        fallback=True,
    )
