from typing import Generic, TypeVar
from collections import deque
from dataclasses import field, dataclass

ElemType = TypeVar("ElemType")


@dataclass
class WorkList(Generic[ElemType]):
    """First-in first-out work list."""

    _queue: deque[ElemType] = field(default_factory=deque)

    def append(self, item: ElemType) -> None:
        self._queue.append(item)

    def pop(self) -> ElemType | None:
        if self._queue:
            return self._queue.popleft()
        return None

    def __len__(self) -> int:
        return len(self._queue)
