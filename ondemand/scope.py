"""
Named accessors over a group of cells.

Each `define`d name gets `get_<name>()`, `get_<name>_mut()` and `into_<name>()`,
with the thunk bound once at definition time:

>>> scope = OnDemand()
>>> _ = scope.define("a", lambda: 1)
>>> def compute_b() -> int:
...     with scope.get_a() as a_guard:
...         return 2 + a_guard.value
>>> _ = scope.define("b", compute_b)
>>> scope.into_b()
3
>>> scope["a"].is_filled
True
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from typing import Any, Optional

from ondemand.borrow import OnDemandError
from ondemand.cell import ExclusiveGuard, LazyCell, SharedGuard

LOGGER = logging.getLogger(__name__)

ACCESSOR_RE = re.compile(r"^(?:get_(?P<get>\w+?)(?P<mut>_mut)?|into_(?P<into>\w+))$")
MUT_SUFFIX = "_mut"


class CellNameError(OnDemandError, KeyError):
    """Cell name is invalid or clashes with an already defined one"""


class UnknownCellError(OnDemandError, KeyError):
    """No cell with such name was defined"""


class OnDemand:
    """Keep track of named cells and the thunks that fill them"""

    def __init__(self) -> None:
        self._cells: dict[str, LazyCell[Any]] = {}
        self._thunks: dict[str, Callable[[], Any]] = {}

    def define(self, name: str, thunk: Callable[[], Any], seed: Optional[Any] = None) -> LazyCell[Any]:
        if not name.isidentifier():
            raise CellNameError(f"Cell name must be a valid identifier, got {name!r}")
        if name in self._cells:
            raise CellNameError(f"{name} is already defined")
        # `get_x_mut` would be ambiguous between `x` and `x_mut`.
        clashing = name[: -len(MUT_SUFFIX)] if name.endswith(MUT_SUFFIX) else f"{name}{MUT_SUFFIX}"
        if clashing in self._cells:
            raise CellNameError(f"{name} clashes with already defined {clashing} (accessors would be ambiguous)")
        # Regular attribute lookup wins over `__getattr__`, e.g. `get_mut` for a cell named `mut`.
        shadowed = [accessor for accessor in self._accessor_names(name) if hasattr(type(self), accessor)]
        if shadowed:
            raise CellNameError(f"{name} accessors {shadowed} clash with {self.__class__.__name__} attributes")

        cell: LazyCell[Any] = LazyCell(seed, name=name)
        self._cells[name] = cell
        self._thunks[name] = thunk
        LOGGER.debug(f"Defined {cell!r}")
        return cell

    @staticmethod
    def _accessor_names(name: str) -> tuple[str, str, str]:
        return f"get_{name}", f"get_{name}{MUT_SUFFIX}", f"into_{name}"

    def _lookup(self,name: str) -> tuple[LazyCell[Any], Callable[[], Any]]:
        try:
            return self._cells[name], self._thunks[name]
        except KeyError:
            raise UnknownCellError(f"No cell named {name!r}, defined: {list(self._cells)}") from None

    def get(self, name: str) -> SharedGuard[Any]:
        cell, thunk = self._lookup(name)
        return cell.get(thunk)

    def get_mut(self, name: str) -> ExclusiveGuard[Any]:
        cell, thunk = self._lookup(name)
        return cell.get_mut(thunk)

    def into(self, name: str) -> Any:
        cell, thunk = self._lookup(name)
        return cell.into_inner(thunk)

    def __getattr__(self, attr: str) -> Callable[[], Any]:
        match = ACCESSOR_RE.match(attr)
        if match is None or attr.startswith("_"):
            raise AttributeError(f"{self.__class__.__name__!r} object has no attribute {attr!r}")
        if match["into"] is not None:
            name = match["into"]
            method = self.into
        elif match["mut"] is not None and match["get"] in self._cells:
            name = match["get"]
            method = self.get_mut
        else:
            name = match["get"] + (match["mut"] or "")
            method = self.get
        if name not in self._cells:
            raise AttributeError(f"{self.__class__.__name__!r} object has no attribute {attr!r} (no cell {name!r})")
        return lambda: method(name)

    def __getitem__(self, name: str) -> LazyCell[Any]:
        return self._lookup(name)[0]

    def __contains__(self, name: object) -> bool:
        return name in self._cells

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({list(self._cells.values())!r})"


__all__ = ["CellNameError", "UnknownCellError", "OnDemand"]
