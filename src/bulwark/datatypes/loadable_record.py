"""
Records whose fields are loaded from the document store on demand.

A handle starts empty. ``load(fields)`` fetches only the fields that are not
resident yet and marks them resident; reading a field that was never loaded
is a programming error and raises :class:`FieldNotLoadedError` instead of
returning an empty default.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Iterable

from bulwark.errors import FieldNotLoadedError
from bulwark.util.logger import get_logger

logger = get_logger("loadable_record")


class LoadableRecord(ABC):
    """Base class of lazily hydrated document handles.

    Subclasses list their loadable fields in ``FIELDS`` and implement
    ``_fetch`` to read a projection of their document.
    """

    FIELDS: ClassVar[tuple[str, ...]] = ()

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._loaded: set[str] = set()

    @property
    def record_name(self) -> str:
        return type(self).__name__

    def _normalize_fields(self, fields: str | Iterable[str] | None) -> list[str]:
        if fields is None:
            return list(self.FIELDS)
        wanted = [fields] if isinstance(fields, str) else list(fields)
        unknown = [field for field in wanted if field not in self.FIELDS]
        if unknown:
            raise ValueError(f"{self.record_name}: unknown field(s) {unknown}")
        return wanted

    @abstractmethod
    async def _fetch(self, fields: list[str]) -> dict[str, Any]:
        """Read ``fields`` from the store. Missing fields are simply absent."""

    async def load(self, fields: str | Iterable[str] | None = None):
        """Load ``fields`` (all fields when None) that are not resident yet.

        Returns:
            The record itself, so calls can be chained.
        """
        missing = [field for field in self._normalize_fields(fields) if field not in self._loaded]
        if not missing:
            return self

        document = await self._fetch(missing)
        for field in missing:
            self._data[field] = document.get(field)
        self._loaded.update(missing)
        return self

    def is_loaded(self, field: str) -> bool:
        return field in self._loaded

    def unload(self, fields: str | Iterable[str] | None = None) -> None:
        """Forget resident fields so the next load fetches them again."""
        for field in self._normalize_fields(fields):
            self._loaded.discard(field)
            self._data.pop(field, None)

    def _get(self, field: str) -> Any:
        if field not in self._loaded:
            logger.warning("[LOADABLE RECORD] %s read field '%s' before loading it", self.record_name, field)
            raise FieldNotLoadedError(self.record_name, field)
        return self._data.get(field)

    def _set_local(self, field: str, value: Any) -> None:
        self._data[field] = value
        self._loaded.add(field)
