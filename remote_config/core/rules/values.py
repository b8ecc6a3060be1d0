"""Value codecs for the closed set of configuration data types."""

from __future__ import annotations

import json
import math
from abc import ABC, abstractmethod
from typing import Any, Dict

from remote_config.core.errors import TypeMismatchError
from .models import DataType


class ValueCodec(ABC):
    """Abstract base class for data type codecs."""

    data_type: DataType

    @abstractmethod
    def coerce(self, raw: Any, field: str = "value") -> Any:
        """Return the canonical value for ``raw``.

        Args:
            raw: Value as received from the caller or the database
            field: Field name used in the error message

        Returns:
            The value in its canonical Python form

        Raises:
            TypeMismatchError: If ``raw`` is not a valid value of this type
        """
        ...

    def is_valid(self, raw: Any) -> bool:
        """Check whether ``raw`` is a valid value of this type."""
        try:
            self.coerce(raw)
        except TypeMismatchError:
            return False
        return True

    def _reject(self, raw: Any, field: str) -> TypeMismatchError:
        return TypeMismatchError(self.data_type.value, raw, field=field)


class NumberCodec(ValueCodec):
    """Finite int or float. Booleans and numeric strings are rejected."""

    data_type = DataType.NUMBER

    def coerce(self, raw: Any, field: str = "value") -> Any:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise self._reject(raw, field)
        if isinstance(raw, float) and not math.isfinite(raw):
            raise self._reject(raw, field)
        return raw


class StringCodec(ValueCodec):
    data_type = DataType.STRING

    def coerce(self, raw: Any, field: str = "value") -> Any:
        if not isinstance(raw, str):
            raise self._reject(raw, field)
        return raw


class BooleanCodec(ValueCodec):
    data_type = DataType.BOOLEAN

    def coerce(self, raw: Any, field: str = "value") -> Any:
        if not isinstance(raw, bool):
            raise self._reject(raw, field)
        return raw


class JsonCodec(ValueCodec):
    """JSON object or array that survives serialisation."""

    data_type = DataType.JSON

    def coerce(self, raw: Any, field: str = "value") -> Any:
        if not isinstance(raw, (dict, list)):
            raise self._reject(raw, field)
        try:
            json.dumps(raw, allow_nan=False)
        except (TypeError, ValueError):
            raise self._reject(raw, field)
        return raw


# Registry mapping data types to codecs
CODECS: Dict[DataType, ValueCodec] = {
    DataType.NUMBER: NumberCodec(),
    DataType.STRING: StringCodec(),
    DataType.BOOLEAN: BooleanCodec(),
    DataType.JSON: JsonCodec(),
}


def get_codec(data_type: DataType) -> ValueCodec:
    """Get codec for a data type."""
    return CODECS[DataType(data_type)]


def coerce_value(data_type: DataType, raw: Any, field: str = "value") -> Any:
    """Coerce ``raw`` to ``data_type`` or raise TypeMismatchError."""
    if raw is None:
        raise TypeMismatchError(DataType(data_type).value, raw, field=field)
    return get_codec(data_type).coerce(raw, field=field)


def serialized_size(value: Any) -> int:
    """Size in bytes of the JSON encoding of a value."""
    return len(json.dumps(value).encode("utf-8"))
