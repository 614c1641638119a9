"""Default row materialization."""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from sqlfacade.typing import ColumnDescription

__all__ = ("RowResult", "column_names")


def column_names(description: "Sequence[ColumnDescription]") -> "list[str]":
    return [column[0] for column in description]


class RowResult(Mapping[str, Any]):
    """One fetched row as an ordered mapping.

    Column lookup is case-insensitive and works by key, by attribute, or by position::

        row = sql.first_row("select ID, Name from person")
        row["name"] == row.NAME == row[1]
    """

    __slots__ = ("_data", "_lookup")

    def __init__(self, data: "Union[Mapping[str, Any], Iterable[tuple[str, Any]]]") -> None:
        items = data.items() if isinstance(data, Mapping) else data
        self._data: dict[str, Any] = dict(items)
        self._lookup: dict[str, str] = {key.lower(): key for key in self._data}

    @classmethod
    def from_row(cls, description: "Sequence[ColumnDescription]", row: "Sequence[Any]") -> "RowResult":
        return cls(zip(column_names(description), row))

    def __getitem__(self, key: "Union[str, int]") -> Any:
        if isinstance(key, int):
            return list(self._data.values())[key]
        try:
            return self._data[self._lookup[key.lower()]]
        except KeyError:
            raise KeyError(key) from None

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            msg = f"{type(self).__name__!r} has no column {name!r}"
            raise AttributeError(msg) from None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._lookup

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"

    def to_dict(self) -> "dict[str, Any]":
        return dict(self._data)
