"""Fixed ordered code list - the index <-> code bijection."""

import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence

from coderaid.engine.errors import UnknownCode

logger = logging.getLogger(__name__)

PACKAGED_CODE_LIST = "pin_codes.csv"


class CodeList(Sequence[str]):
    """
    Immutable ordered list of candidate codes.

    Index ``i`` maps to the ``i``-th record of the source list. Persisted
    bitmaps store indices, so the list must never be reordered between runs.
    """

    __slots__ = ("_codes", "_index")

    def __init__(self, codes: Iterable[str]):
        ordered = tuple(codes)
        index: dict[str, int] = {}
        for position, code in enumerate(ordered):
            if not code:
                raise ValueError(f"Empty code at position {position}")
            if code in index:
                raise ValueError(f"Duplicate code {code!r} at position {position}")
            index[code] = position
        if not ordered:
            raise ValueError("Code list is empty")
        self._codes = ordered
        self._index = index

    @classmethod
    def parse(cls, text: str) -> "CodeList":
        """Parse ``code;extra...`` records, one per line; only the first field is used."""
        return cls(
            line.split(";", 1)[0].strip()
            for line in text.splitlines()
            if line.strip()
        )

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "CodeList":
        """Load a code list from ``path`` or from the packaged PIN list."""
        if path is None:
            text = (
                resources.files("coderaid.data")
                .joinpath(PACKAGED_CODE_LIST)
                .read_text(encoding="utf-8")
            )
        else:
            text = Path(path).read_text(encoding="utf-8")
        code_list = cls.parse(text)
        logger.debug(f"Loaded {len(code_list)} codes from {path or PACKAGED_CODE_LIST}")
        return code_list

    def code_at(self, index: int) -> str:
        return self._codes[index]

    def index_of(self, code: str) -> int:
        """Return the index of ``code``; raises UnknownCode if not in the list."""
        try:
            return self._index[code]
        except KeyError:
            raise UnknownCode(code) from None

    def __getitem__(self, index):
        return self._codes[index]

    def __len__(self) -> int:
        return len(self._codes)

    def __iter__(self) -> Iterator[str]:
        return iter(self._codes)

    def __contains__(self, code: object) -> bool:
        return code in self._index


@lru_cache(maxsize=None)
def pin_codes(path: Optional[Path] = None) -> CodeList:
    """Process-wide code list, loaded once per source path."""
    return CodeList.load(path)
