#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/markpipe/ast/data.py
"""Namespaced sidecar maps for plugin-to-plugin communication.

``Node.data`` and ``VFile.data`` are open-ended stores that the core never
interprets. To keep unrelated plugins from silently overwriting each other,
every key is namespaced as ``"<plugin>:<field>"``.

Examples
--------
    >>> data = DataMap()
    >>> data["slug:id"] = "introduction"
    >>> slugs = data.scope("slug")
    >>> slugs["id"]
    'introduction'
    >>> data["id"] = "x"
    Traceback (most recent call last):
        ...
    KeyError: "Data keys must be namespaced as 'plugin:field', got 'id'"

"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Any

from markpipe.constants import DATA_KEY_SEPARATOR


def make_key(namespace: str, name: str) -> str:
    """Join a namespace and a field name into a data key."""
    if not namespace or DATA_KEY_SEPARATOR in namespace:
        raise ValueError(f"Invalid data namespace: {namespace!r}")
    if not name:
        raise ValueError("Data field name must not be empty")
    return f"{namespace}{DATA_KEY_SEPARATOR}{name}"


def split_key(key: str) -> tuple[str, str]:
    """Split a namespaced key into ``(namespace, field)``.

    Raises
    ------
    KeyError
        If the key is not of the form ``"namespace:field"``

    """
    if not isinstance(key, str):
        raise KeyError(f"Data keys must be strings, got {type(key).__name__}")
    namespace, sep, name = key.partition(DATA_KEY_SEPARATOR)
    if not sep or not namespace or not name:
        raise KeyError(f"Data keys must be namespaced as 'plugin:field', got {key!r}")
    return namespace, name


class DataMap(dict):  # type: ignore[type-arg]
    """Dictionary whose keys must be namespaced ``"plugin:field"`` strings."""

    def __init__(self, *args: Any, **kwargs: Any):
        """Initialize from any mapping, validating every key."""
        super().__init__()
        self.update(*args, **kwargs)

    def __setitem__(self, key: str, value: Any) -> None:
        split_key(key)
        super().__setitem__(key, value)

    def update(self, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        """Update from mappings or pairs, validating every key."""
        for key, value in dict(*args, **kwargs).items():
            self[key] = value

    def setdefault(self, key: str, default: Any = None) -> Any:  # type: ignore[override]
        """Validate the key, then behave like ``dict.setdefault``."""
        split_key(key)
        return super().setdefault(key, default)

    def namespaces(self) -> set[str]:
        """Return the set of namespaces that currently hold keys."""
        return {split_key(key)[0] for key in self}

    def scope(self, namespace: str) -> ScopedData:
        """Return a view of this map restricted to one namespace."""
        return ScopedData(self, namespace)

    def copy(self) -> DataMap:
        """Return a shallow copy that is still a ``DataMap``."""
        return DataMap(self)

    def __reduce__(self) -> tuple[Any, ...]:
        return (DataMap, (dict(self),))


class ScopedData(MutableMapping):  # type: ignore[type-arg]
    """Mutable view onto the keys of one namespace in a ``DataMap``."""

    def __init__(self, store: DataMap, namespace: str):
        """Bind the view to ``store`` and ``namespace``."""
        make_key(namespace, "_")
        self._store = store
        self.namespace = namespace

    def __getitem__(self, name: str) -> Any:
        return self._store[make_key(self.namespace, name)]

    def __setitem__(self, name: str, value: Any) -> None:
        self._store[make_key(self.namespace, name)] = value

    def __delitem__(self, name: str) -> None:
        del self._store[make_key(self.namespace, name)]

    def __iter__(self) -> Iterator[str]:
        prefix = f"{self.namespace}{DATA_KEY_SEPARATOR}"
        for key in list(self._store):
            if key.startswith(prefix):
                yield key[len(prefix) :]

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"ScopedData({self.namespace!r}, {dict(self.items())!r})"
