import pytest

from uc3m_api.core.fail_fast import ProcessState, process


class Boom(Exception):
    pass


def failing_after(items, error):
    yield from items
    raise error


def test_process_yields_every_item_when_nothing_fails():
    items, state = process(iter([1, 2, 3]), Boom)

    assert list(items) == [1, 2, 3]
    assert state.ok
    assert state.error is None


def test_process_stops_at_first_failure_and_keeps_earlier_items():
    error = Boom("second item")

    def source():
        yield 1
        raise error
        yield 2  # never reached

    items, state = process(source(), Boom)

    assert list(items) == [1]
    assert not state.ok
    assert state.error is error


def test_process_is_exhausted_after_failure():
    items, state = process(failing_after([1], Boom()), Boom)

    assert list(items) == [1]
    assert next(items, None) is None
    assert not state.ok


def test_process_propagates_uncaught_error_types():
    items, _ = process(failing_after([1], KeyError("other")), Boom)

    assert next(items) == 1
    with pytest.raises(KeyError):
        next(items)


def test_shared_state_stops_later_iterations():
    state = ProcessState()
    first, _ = process(failing_after(["a"], Boom("first")), Boom, state)
    collected = list(first)

    second, same_state = process(iter(["b", "c"]), Boom, state)
    collected.extend(second)

    assert same_state is state
    assert collected == ["a"]
    assert str(state.error) == "first"


def test_raise_for_error():
    state = ProcessState()
    state.raise_for_error()  # ok state does nothing

    state.error = Boom("stored")
    with pytest.raises(Boom, match="stored"):
        state.raise_for_error()
    assert "stored" in repr(state)
