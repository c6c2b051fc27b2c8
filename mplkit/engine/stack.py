"""Prune failure tracebacks down to the module that was invoked."""

from __future__ import annotations

import traceback
from types import TracebackType
from typing import Callable, Sequence

FramePredicate = Callable[[traceback.FrameSummary], bool]


def _summarize(tb: TracebackType) -> traceback.FrameSummary:
    code = tb.tb_frame.f_code
    return traceback.FrameSummary(code.co_filename, tb.tb_lineno, code.co_name, lookup_line=False)


class StackPruner:
    """Drop host frames outside the outermost module-invocation boundary.

    Frames are ordered outermost first, as Python records them. The boundary frame
    and every frame inward of it are kept. Without a boundary frame the stack is
    returned untouched.
    """

    def __init__(self, is_boundary: FramePredicate) -> None:
        self._is_boundary = is_boundary

    def prune_frames(self, frames: Sequence[traceback.FrameSummary]) -> traceback.StackSummary:
        for idx, frame in enumerate(frames):
            if self._is_boundary(frame):
                return traceback.StackSummary.from_list(list(frames[idx:]))
        return traceback.StackSummary.from_list(list(frames))

    def prune_traceback(self, tb: TracebackType | None) -> TracebackType | None:
        node = tb
        while node is not None:
            if self._is_boundary(_summarize(node)):
                return node
            node = node.tb_next
        return tb

    def prune(self, exc: BaseException) -> traceback.StackSummary:
        frames = traceback.extract_tb(exc.__traceback__)
        return self.prune_frames(frames)
