# src/markup_auditor/utils/positions.py
from bisect import bisect_right
from typing import List, Tuple

from markup_auditor.model import SourceLocation


class LineIndex:
    """
    Maps character offsets of a source text to 1-based (line, column) pairs.
    Built once per text; lookups are O(log n).
    """

    def __init__(self, text: str, path: str):
        self.path = path
        self._starts: List[int] = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._starts.append(i + 1)

    def position(self, offset: int) -> Tuple[int, int]:
        line = bisect_right(self._starts, offset)
        return line, offset - self._starts[line - 1] + 1

    def locate(self, offset: int) -> SourceLocation:
        line, column = self.position(offset)
        return SourceLocation(path=self.path, line=line, column=column)
