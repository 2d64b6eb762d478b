""" Lazy, memoized value cells with runtime-checked shared, exclusive and consuming access """
from __future__ import annotations

from .borrow import BorrowConflict, BorrowMode, ConsumedCellError, OnDemandError
from .cell import CellState, ExclusiveGuard, LazyCell, SharedGuard
from .logging import ChangeLoggingLevel, setup_logging
from .scope import CellNameError, OnDemand, UnknownCellError

__version__ = "0.1.0"
