"""Conversion between wire dicts (camelCase JSON) and record objects."""

from typing import Any, Callable, Dict, Iterable, List, Type, TypeVar, Union

from .calculations import is_finite_number
from .service_entry import ServiceEntry
from .service_interval import ServiceInterval
from .storage import DEFAULT_SCHEMA_VERSION, ensure_list
from .trash import TrashedServiceEntry
from .vehicle import Vehicle

T = TypeVar("T")


def parse_records(value: Any, parse: Callable[[Dict[str, Any]], T]) -> List[T]:
    """Parse a list of dicts; non-list values and non-dict items are dropped."""
    return [parse(item) for item in ensure_list(value) if isinstance(item, dict)]


def parse_vehicles(value: Any) -> List[Vehicle]:
    return parse_records(value, Vehicle.from_dict)


def parse_service_entries(value: Any) -> List[ServiceEntry]:
    return parse_records(value, ServiceEntry.from_dict)


def parse_service_intervals(value: Any) -> List[ServiceInterval]:
    return parse_records(value, ServiceInterval.from_dict)


def parse_trash(value: Any) -> List[TrashedServiceEntry]:
    return parse_records(value, TrashedServiceEntry.from_dict)


def parse_schema_version(value: Any) -> Union[int, float]:
    """Schema version from a payload; absent or non-numeric gives the default."""
    if not is_finite_number(value):
        return DEFAULT_SCHEMA_VERSION
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def to_dicts(records: Iterable[Any]) -> List[Dict[str, Any]]:
    return [record.to_dict() for record in records]


def coerce_record(cls: Type[T], data: Union[T, Dict[str, Any]]) -> T:
    """Copy a record object, or build one from a wire dict."""
    if isinstance(data, cls):
        return data.copy()
    if isinstance(data, dict):
        return cls.from_dict(data)
    raise TypeError(f"Expected {cls.__name__} or dict, got {type(data).__name__}")
