"""Ordered stack used for both the formatter and the handler chain."""

from __future__ import annotations

from typing import Generic, Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")


class Stack(Generic[T]):
    """
    Growable stack with a read-only snapshot view.

    Rules
    -----
    - ``push`` appends to the top; duplicates are allowed.
    - ``pop`` removes and returns the top element, or None when empty.
    - ``list`` returns elements in insertion order; iteration runs top-down.
    - Not thread-safe.

    Usage example
    -------------
        chain = Stack([a, b])
        chain.push(c)
        list(chain)  # [c, b, a]
    """

    def __init__(self, elements: Optional[Iterable[T]] = None) -> None:
        self._items: list[T] = list(elements or [])

    def push(self, element: T) -> None:
        self._items.append(element)

    def pop(self) -> Optional[T]:
        if not self._items:
            return None
        return self._items.pop()

    def clear(self) -> None:
        self._items.clear()

    def list(self) -> tuple[T, ...]:  # noqa: A003
        return tuple(self._items)

    def top_down(self) -> tuple[T, ...]:
        """Snapshot in invocation order (most recently pushed first)."""
        return tuple(reversed(self._items))

    def __iter__(self) -> Iterator[T]:
        return iter(self.top_down())

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __repr__(self) -> str:
        return f"Stack({self._items!r})"
