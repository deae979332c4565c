# uc3m_api/core/fail_fast.py
from typing import Generic, Iterable, Iterator, Optional, Tuple, Type, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)

ErrorTypes = Union[Type[BaseException], Tuple[Type[BaseException], ...]]


class ProcessState(Generic[E]):
    """
    Out-of-band result of a `Process` iteration.

    Starts out "ok" and holds the first error raised by the wrapped source once
    one occurs. A single state may be shared by several consecutive `Process`
    iterations; as soon as it holds an error, every iteration using it ends.
    """

    def __init__(self):
        self.error: Optional[E] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Re-raises the stored error, if any."""
        if self.error is not None:
            raise self.error

    def __repr__(self) -> str:
        return "ProcessState(ok)" if self.ok else f"ProcessState(error={self.error!r})"


class Process(Iterator[T]):
    """
    Iterator adapter that yields the items of `source` until producing one of
    them raises an error of the `catch` types. The error is then stored in the
    state and the iteration ends; items yielded before it are kept by the caller.

    Errors of any other type propagate untouched.
    """

    def __init__(self, source: Iterable[T], state: ProcessState, catch: ErrorTypes):
        self._source = iter(source)
        self.state = state
        self._catch = catch

    def __iter__(self) -> "Process[T]":
        return self

    def __next__(self) -> T:
        if not self.state.ok:
            raise StopIteration
        try:
            return next(self._source)
        except StopIteration:
            raise
        except self._catch as e:
            self.state.error = e
            raise StopIteration


def process(
    source: Iterable[T],
    catch: ErrorTypes,
    state: Optional[ProcessState] = None,
) -> Tuple[Process[T], ProcessState]:
    """
    Wraps `source` in a fail-fast `Process`.

    Args:
        source: Any iterable; a failure is an exception raised while producing an item.
        catch: Exception type(s) recorded as failures. Anything else propagates.
        state: Optional existing state to report into (and to honour if it already failed).

    Returns:
        A tuple (iterator, state). Inspect the state once the iterator is drained.
    """
    if state is None:
        state = ProcessState()
    return Process(source, state, catch), state
