"""
Lazy, memoized value cells.

A cell starts empty (or seeded) and is filled by the thunk passed to the first access that finds it empty.
Later cells may read earlier ones from their thunks, which is the only way to express dependencies:

>>> a = LazyCell(name="a")
>>> b = LazyCell(name="b")
>>> def compute_b() -> int:
...     with a.get(lambda: 1) as a_guard:
...         return 2 + a_guard.value
>>> with b.get(compute_b) as b_guard:
...     b_guard.value
3
>>> a.into_inner(lambda: 100)
1

There is no cycle detection: a thunk that reaches its own cell, directly or through other cells,
finds it exclusively borrowed by the fill in progress and gets a `BorrowConflict`.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from typing import Any, Generic, Optional, Self, TypeVar

from ondemand.borrow import Borrow, BorrowConflict, BorrowMode, BorrowTracker, ConsumedCellError

LOGGER = logging.getLogger(__name__)

TCellValue = TypeVar("TCellValue")


class CellState(enum.Enum):
    EMPTY = enum.auto()
    FILLED = enum.auto()
    CONSUMED = enum.auto()


class LazyCell(Generic[TCellValue]):
    def __init__(self, seed: Optional[TCellValue] = None, *, name: str = None):
        self._name = name
        self._borrows = BorrowTracker(name)
        self._value: Optional[TCellValue] = seed
        if seed is None:
            self._state = CellState.EMPTY
        else:
            self._state = CellState.FILLED
            LOGGER.debug(f"{self!r} seeded, its thunks will never run")

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def state(self) -> CellState:
        return self._state

    @property
    def is_filled(self) -> bool:
        return self._state is CellState.FILLED

    @property
    def is_consumed(self) -> bool:
        return self._state is CellState.CONSUMED

    @property
    def borrow_mode(self) -> BorrowMode:
        return self._borrows.mode

    def _ensure_alive(self) -> None:
        if self._state is CellState.CONSUMED:
            raise ConsumedCellError(f"{self!r} was consumed by into_inner and can't be accessed anymore")

    def _fill(self, thunk: Callable[[], TCellValue], borrow: Borrow) -> None:
        # Runs under an exclusive borrow, so a reentrant access of this cell from `thunk` conflicts.
        assert borrow.held and borrow.mode is BorrowMode.EXCLUSIVE
        LOGGER.debug(f"Computing value for {self!r}")
        value = thunk()
        self._value = value
        self._state = CellState.FILLED
        LOGGER.debug(f"Filled {self!r}")

    def get(self, thunk: Callable[[], TCellValue]) -> SharedGuard[TCellValue]:
        """
        Shared read access, running `thunk` first if the cell is still empty.

        Raises `BorrowConflict` while an exclusive guard (or a fill) is outstanding.
        """
        self._ensure_alive()
        if self._state is CellState.FILLED:
            borrow = self._borrows.shared()
            borrow.acquire()
            return SharedGuard(self, borrow)
        with self._borrows.exclusive() as borrow:
            self._fill(thunk, borrow)
            borrow.downgrade()
            return SharedGuard(self, borrow.detach())

    def get_mut(self, thunk: Callable[[], TCellValue]) -> ExclusiveGuard[TCellValue]:
        """
        Exclusive read-write access, running `thunk` first if the cell is still empty.

        Raises `BorrowConflict` while any other guard is outstanding.
        """
        self._ensure_alive()
        with self._borrows.exclusive() as borrow:
            if self._state is CellState.EMPTY:
                self._fill(thunk, borrow)
            return ExclusiveGuard(self, borrow.detach())

    def into_inner(self, thunk: Callable[[], TCellValue]) -> TCellValue:
        """
        Move the value out of the cell, ending its usable lifetime.

        An empty cell returns `thunk()` directly without storing it.
        If `thunk` raises, the cell is left empty and usable.
        """
        self._ensure_alive()
        with self._borrows.exclusive():
            if self._state is CellState.FILLED:
                value = self._value
            else:
                LOGGER.debug(f"Computing value for {self!r} to move it out directly")
                value = thunk()
            self._value = None
            self._state = CellState.CONSUMED
        LOGGER.debug(f"Consumed {self!r}")
        return value

    def __getstate__(self) -> dict[str, Any]:
        if self._borrows.is_borrowed:
            raise BorrowConflict(f"Can't copy or pickle {self!r} while it is borrowed")
        state = self.__dict__.copy()
        state["_borrows"] = BorrowTracker(self._name)
        return state

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name!r}, {self._state.name.lower()}, {self._borrows.describe()})"


class _CellGuard(Generic[TCellValue]):
    def __init__(self, cell: LazyCell[TCellValue], borrow: Borrow):
        self._cell = cell
        self._borrow = borrow

    @property
    def held(self) -> bool:
        return self._borrow.held

    def _ensure_held(self) -> None:
        if not self._borrow.held:
            raise BorrowConflict(f"{self!r} was released, its value can't be accessed anymore")

    @property
    def value(self) -> TCellValue:
        self._ensure_held()
        return self._cell._value  # noqa: SLF001

    def release(self) -> None:
        if self._borrow.held:
            self._borrow.release()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_) -> None:
        self.release()

    def __del__(self) -> None:
        # Guards dropped without an explicit release still return the cell to unborrowed.
        borrow = getattr(self, "_borrow", None)
        if borrow is not None and borrow.held:
            borrow.release()

    def __reduce__(self):
        raise TypeError(f"Can't pickle {self!r}, guards only make sense for a live cell")

    def __repr__(self) -> str:
        state = "held" if self._borrow.held else "released"
        return f"{self.__class__.__name__}({self._cell!r}, {state})"


class SharedGuard(_CellGuard[TCellValue]):
    """Read-only view of a filled cell; any number may coexist"""


class ExclusiveGuard(_CellGuard[TCellValue]):
    """Read-write view of a filled cell; assignments and in-place mutations persist in the cell"""

    @_CellGuard.value.setter  # type: ignore[attr-defined]
    def value(self, value: TCellValue) -> None:
        self._ensure_held()
        self._cell._value = value  # noqa: SLF001


__all__ = ["CellState", "LazyCell", "SharedGuard", "ExclusiveGuard"]
