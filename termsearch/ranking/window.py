"""Pagination windows that never split a tie group.

Business-score reordering happens inside groups of equal relevance score. If
a requested page boundary cut through such a group, the items on either side
of the boundary could swap between pages from one request to the next. The
window is therefore widened to whole tie groups before hydration and sorting,
and trimmed back to the requested page afterwards.
"""

from dataclasses import dataclass
from typing import Sequence

from termsearch_libs.providers.records import ScoredRef


@dataclass(frozen=True)
class Window:
    """Inclusive ``[min_index, max_index]`` plus the page start asked for."""
    min_index: int
    max_index: int
    original_min_index: int

    @property
    def start_offset(self) -> int:
        """Items to drop from the front of the widened window."""
        return self.original_min_index - self.min_index


def expand_window(refs: Sequence[ScoredRef], min_index: int, max_index: int) -> Window:
    """Widen ``[min_index, max_index]`` to cover every tie group it touches.

    ``refs`` must be sorted by descending score and ``min_index`` must be a
    valid index into it. ``max_index`` may overrun; it is clamped to the last
    element before the upper boundary is widened.
    """
    original_min_index = min_index

    while min_index > 0 and refs[min_index - 1].score == refs[min_index].score:
        min_index -= 1

    if max_index >= len(refs):
        max_index = len(refs) - 1

    while max_index + 1 < len(refs) and refs[max_index + 1].score == refs[max_index].score:
        max_index += 1

    return Window(min_index, max_index, original_min_index)
