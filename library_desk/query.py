from typing import Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")


class Selection(Generic[T]):
    """A lazy, restartable view over a store.

    Nothing is evaluated until iteration; each new iteration re-reads the
    source, so the same selection reflects later mutations of the store.
    """

    def __init__(self, source: Callable[[], Iterable[T]], predicate: Callable[[T], bool]) -> None:
        self._source = source
        self._predicate = predicate

    def __iter__(self) -> Iterator[T]:
        return (item for item in self._source() if self._predicate(item))

    def first(self) -> Optional[T]:
        return next(iter(self), None)

    def to_list(self) -> List[T]:
        return list(self)
