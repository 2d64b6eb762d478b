from __future__ import annotations

import enum
from typing import Self


class OnDemandError(Exception):
    """Common base class for `ondemand`-specific errors"""


class BorrowConflict(OnDemandError):
    """Requested access mode is incompatible with an outstanding borrow"""


class ConsumedCellError(BorrowConflict):
    """Access to a cell after its value was moved out with `into_inner`"""


class BorrowMode(enum.Enum):
    UNBORROWED = enum.auto()
    SHARED = enum.auto()
    EXCLUSIVE = enum.auto()


class BorrowTracker:
    """
    Dynamic borrow state of a single slot: unborrowed, shared by `n` or exclusively held.

    Nothing ever waits: a conflicting request raises `BorrowConflict` right away.

    >>> tracker = BorrowTracker("a")
    >>> tracker.acquire_shared()
    >>> tracker.acquire_shared()
    >>> tracker.mode, tracker.shared_count
    (<BorrowMode.SHARED: 2>, 2)
    >>> tracker.acquire_exclusive()
    Traceback (most recent call last):
    ...
    ondemand.borrow.BorrowConflict: Can't borrow 'a' exclusively: already borrowed as shared (2)
    """

    def __init__(self, name: str | None = None):
        self._name = name
        self._mode = BorrowMode.UNBORROWED
        self._shared_count = 0

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def mode(self) -> BorrowMode:
        return self._mode

    @property
    def shared_count(self) -> int:
        return self._shared_count

    @property
    def is_borrowed(self) -> bool:
        return self._mode is not BorrowMode.UNBORROWED

    def describe(self) -> str:
        if self._mode is BorrowMode.SHARED:
            return f"shared ({self._shared_count})"
        return self._mode.name.lower()

    def _conflict(self, requested: str) -> BorrowConflict:
        return BorrowConflict(f"Can't borrow {self._name!r} {requested}: already borrowed as {self.describe()}")

    def acquire_shared(self) -> None:
        if self._mode is BorrowMode.EXCLUSIVE:
            raise self._conflict("as shared")
        self._mode = BorrowMode.SHARED
        self._shared_count += 1

    def acquire_exclusive(self) -> None:
        if self._mode is not BorrowMode.UNBORROWED:
            raise self._conflict("exclusively")
        self._mode = BorrowMode.EXCLUSIVE

    def release_shared(self) -> None:
        if self._mode is not BorrowMode.SHARED:
            raise ValueError(f"Shared borrow of {self._name!r} is not held and cannot be released")
        self._shared_count -= 1
        if self._shared_count == 0:
            self._mode = BorrowMode.UNBORROWED

    def release_exclusive(self) -> None:
        if self._mode is not BorrowMode.EXCLUSIVE:
            raise ValueError(f"Exclusive borrow of {self._name!r} is not held and cannot be released")
        self._mode = BorrowMode.UNBORROWED

    def downgrade(self) -> None:
        """Turn the held exclusive borrow into a single shared one, with no unborrowed gap"""
        if self._mode is not BorrowMode.EXCLUSIVE:
            raise ValueError(f"Can't downgrade {self._name!r}: not borrowed exclusively")
        self._mode = BorrowMode.SHARED
        self._shared_count = 1

    def shared(self) -> Borrow:
        return Borrow(self, BorrowMode.SHARED)

    def exclusive(self) -> Borrow:
        return Borrow(self, BorrowMode.EXCLUSIVE)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._name!r}, {self.describe()})"


class Borrow:
    """One acquisition of a `BorrowTracker` in a given mode"""

    def __init__(self, tracker: BorrowTracker, mode: BorrowMode):
        if mode is BorrowMode.UNBORROWED:
            raise ValueError("Can't create a borrow without a mode, use either shared or exclusive")
        self._tracker = tracker
        self._mode = mode
        self._held = False

    @property
    def mode(self) -> BorrowMode:
        return self._mode

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        if self._held:
            raise ValueError(f"{self!r} is already acquired")
        if self._mode is BorrowMode.SHARED:
            self._tracker.acquire_shared()
        else:
            self._tracker.acquire_exclusive()
        self._held = True

    def release(self) -> None:
        if not self._held:
            raise ValueError(f"{self!r} is not acquired and cannot be released")
        if self._mode is BorrowMode.SHARED:
            self._tracker.release_shared()
        else:
            self._tracker.release_exclusive()
        self._held = False

    def downgrade(self) -> None:
        if not self._held or self._mode is not BorrowMode.EXCLUSIVE:
            raise ValueError(f"Can't downgrade {self!r}")
        self._tracker.downgrade()
        self._mode = BorrowMode.SHARED

    def detach(self) -> Self:
        """Hand the held acquisition over to a new handle, leaving this one released"""
        if not self._held:
            raise ValueError(f"{self!r} is not acquired and cannot be handed over")
        handed_over = self.__class__(self._tracker, self._mode)
        handed_over._held = True  # noqa: SLF001
        self._held = False
        return handed_over

    def __enter__(self) -> Self:
        self.acquire()
        return self

    def __exit__(self, *_) -> None:
        if self._held:
            self.release()

    def __reduce__(self):
        raise TypeError(f"Can't pickle {self!r}, borrows only make sense for a live tracker")

    def __repr__(self) -> str:
        state = "held" if self._held else "released"
        return f"{self.__class__.__name__}({self._tracker.name!r}, {self._mode.name.lower()}, {state})"


__all__ = ["OnDemandError", "BorrowConflict", "ConsumedCellError", "BorrowMode", "BorrowTracker", "Borrow"]
