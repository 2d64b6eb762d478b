from __future__ import annotations

import pytest

from ondemand import BorrowConflict, CellNameError, ConsumedCellError, LazyCell, OnDemand, UnknownCellError


@pytest.fixture()
def scope() -> OnDemand:
    scope = OnDemand()
    calls: list[str] = []

    def compute_a() -> int:
        calls.append("a")
        return 1

    def compute_b() -> int:
        calls.append("b")
        with scope.get_a() as a_guard:
            return 2 + a_guard.value

    def compute_c() -> int:
        calls.append("c")
        with scope.get_a() as a_guard, scope.get_b() as b_guard:
            return 3 + a_guard.value + b_guard.value

    scope.define("a", compute_a)
    scope.define("b", compute_b)
    scope.define("c", compute_c)
    scope.calls = calls  # type: ignore[attr-defined]
    return scope


def test_named_accessors(scope):
    with scope.get_c() as c_guard:
        assert c_guard.value == 7
    assert scope.calls == ["c", "a", "b"]


def test_indexed_accessors(scope):
    with scope.get_mut("b") as b_guard:
        b_guard.value *= 10
    with scope.get("b") as b_guard:
        assert b_guard.value == 30
    assert scope.into("b") == 30
    assert scope.calls == ["b", "a"]


def test_into(scope):
    assert scope.into_a() == 1
    assert scope["a"].is_consumed
    with pytest.raises(ConsumedCellError):
        scope.get_b()


def test_mut_conflict(scope):
    a_guard = scope.get_a_mut()
    with pytest.raises(BorrowConflict, match="'a'"):
        scope.get_b()
    a_guard.release()
    with scope.get_b() as b_guard:
        assert b_guard.value == 3


def test_seed():
    scope = OnDemand()
    cell = scope.define("a", lambda: 1, seed=10)
    assert isinstance(cell, LazyCell)
    assert cell.is_filled
    assert scope.into_a() == 10


def test_mut_suffix_names():
    scope = OnDemand()
    scope.define("x_mut", lambda: "shared")
    with scope.get_x_mut() as guard:
        assert guard.value == "shared"
    with scope.get_x_mut_mut() as guard:
        guard.value = "changed"
    assert scope.into_x_mut() == "changed"


@pytest.mark.parametrize(("first", "second"), [("a", "a"), ("a", "a_mut"), ("a_mut", "a")])
def test_name_clash_error(first, second):
    scope = OnDemand()
    scope.define(first, lambda: 1)
    with pytest.raises(CellNameError):
        scope.define(second, lambda: 2)
    with pytest.raises(KeyError):
        scope.define(second, lambda: 2)


@pytest.mark.parametrize("name", ["mut"])
def test_name_shadowed_by_method_error(name):
    scope = OnDemand()
    with pytest.raises(CellNameError, match="clash with OnDemand attributes"):
        scope.define(name, lambda: 1)
    assert name not in scope
    # The method keeps its own meaning
    with pytest.raises(UnknownCellError):
        scope.get_mut(name)


def test_invalid_name_error():
    with pytest.raises(CellNameError, match="identifier"):
        OnDemand().define("not a name", lambda: 1)


def test_unknown_cell_error(scope):
    with pytest.raises(UnknownCellError, match="'d'"):
        scope.get("d")
    with pytest.raises(UnknownCellError):
        _ = scope["d"]
    with pytest.raises(AttributeError, match="no cell 'd'"):
        scope.get_d()
    with pytest.raises(AttributeError, match="'foo'"):
        _ = scope.foo


def test_container(scope):
    assert len(scope) == 3
    assert list(scope) == ["a", "b", "c"]
    assert "a" in scope
    assert "d" not in scope
    assert repr(scope).startswith("OnDemand([LazyCell('a', empty, unborrowed)")
