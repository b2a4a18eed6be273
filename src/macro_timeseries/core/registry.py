"""
Named registry of component classes.

Data source variants (remote World Bank, cached World Bank, local CSV) are
looked up by the name given in the run config, so the pipeline never
branches on where the data comes from.
"""

from __future__ import annotations

from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class Registry(Generic[T]):
    """
    Map names (and aliases) to classes.

    Usage:
        data_source_registry = Registry[BaseDataSource]("data_sources")

        @data_source_registry.register("csv", aliases=["file"])
        class CsvFileSource(BaseDataSource):
            ...

        source = data_source_registry.create("csv", path="datos_bccr.csv")
    """

    def __init__(self, name: str):
        self.name = name
        self._classes: dict[str, type[T]] = {}
        self._primary: list[str] = []

    def register(
        self,
        name: str,
        aliases: Optional[list[str]] = None,
    ) -> Callable[[type[T]], type[T]]:
        """
        Class decorator registering `cls` under `name` and every alias.

        Raises:
            ValueError: If the name or an alias is already taken
        """
        def decorator(cls: type[T]) -> type[T]:
            keys = [name, *(aliases or [])]
            taken = [key for key in keys if key in self._classes]
            if taken:
                raise ValueError(f"{taken} already registered in {self.name} registry")
            for key in keys:
                self._classes[key] = cls
            self._primary.append(name)
            return cls

        return decorator

    def get(self, name: str) -> type[T]:
        """
        Class registered under a name or alias.

        Raises:
            KeyError: If name is not registered
        """
        if name not in self._classes:
            available = ", ".join(sorted(self._classes))
            raise KeyError(f"'{name}' not found in {self.name} registry. Available: {available}")
        return self._classes[name]

    def create(self, name: str, **kwargs) -> T:
        return self.get(name)(**kwargs)

    def list(self) -> list[str]:
        """Primary names in registration order (aliases excluded)."""
        return list(self._primary)


data_source_registry = Registry["BaseDataSource"]("data_sources")
