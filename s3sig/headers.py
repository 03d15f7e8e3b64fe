from collections.abc import Mapping, MutableMapping
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

HeaderInput = Union[Mapping, Iterable[Tuple[str, Any]]]


class Headers(MutableMapping):
    """
    Case-insensitive, multi-valued HTTP header map.

    Keys are stored lowercased, which is the form SigV4 signs them in.
    Iteration follows first insertion. A name seen more than once keeps every
    value; indexing returns them joined with a comma.
    """

    def __init__(self, headers: Optional[HeaderInput] = None) -> None:
        self._values: Dict[str, List[str]] = {}
        if headers is not None:
            self.extend(headers)

    def extend(self, headers: HeaderInput) -> None:
        if isinstance(headers, Headers):
            for name in headers:
                for value in headers.get_all(name):
                    self.add(name, value)
            return
        items = headers.items() if isinstance(headers, Mapping) else headers
        for name, value in items:
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.add(name, item)
            else:
                self.add(name, value)

    def add(self, name: str, value: Any) -> None:
        self._values.setdefault(name.lower(), []).append(str(value))

    def get_all(self, name: str) -> List[str]:
        return list(self._values.get(name.lower(), []))

    def copy(self) -> "Headers":
        return Headers(self)

    def __getitem__(self, name: str) -> str:
        return ",".join(self._values[name.lower()])

    def __setitem__(self, name: str, value: Any) -> None:
        self._values[name.lower()] = [str(value)]

    def __delitem__(self, name: str) -> None:
        del self._values[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._values))

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"
