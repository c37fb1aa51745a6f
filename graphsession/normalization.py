"""
Result Normalization Module

This module rewrites values returned by the neo4j driver into plain,
JSON-safe Python values (dict, list, str, int, float, bool, None).

Every value is first classified into a ``ValueKind`` and then handed to the
handler registered for that kind, so the set of supported driver types is
listed in one place.
"""

import calendar
import datetime as dt
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from neo4j import Record
from neo4j.graph import Node, Path, Relationship
from neo4j.spatial import Point
from neo4j.time import Date, DateTime, Duration, Time

# Integers beyond this magnitude lose precision in IEEE-754 doubles.
MAX_SAFE_INTEGER = 2**53 - 1
MIN_SAFE_INTEGER = -MAX_SAFE_INTEGER

_TEMPORAL_TYPES = (Date, DateTime, Time, dt.date, dt.time)
_DATE_TYPES = (Date, DateTime, dt.date)
_TIME_TYPES = (DateTime, Time, dt.datetime, dt.time)


class ValueKind(str, Enum):
    """Closed set of value shapes the normalizer knows how to rewrite."""

    TEMPORAL = "temporal"
    DURATION = "duration"
    POINT = "point"
    ENTITY = "entity"
    PATH = "path"
    INTEGER = "integer"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    SCALAR = "scalar"


def classify(value: Any) -> ValueKind:
    """Return the kind of ``value``; the first matching kind wins."""
    if isinstance(value, _TEMPORAL_TYPES):
        return ValueKind.TEMPORAL
    # Duration, Point and Record are tuple subclasses and must precede SEQUENCE.
    if isinstance(value, Duration):
        return ValueKind.DURATION
    if isinstance(value, Point):
        return ValueKind.POINT
    if isinstance(value, (Node, Relationship)):
        return ValueKind.ENTITY
    if isinstance(value, Path):
        return ValueKind.PATH
    if isinstance(value, int) and not isinstance(value, bool):
        return ValueKind.INTEGER
    if isinstance(value, Record):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple)):
        return ValueKind.SEQUENCE
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    return ValueKind.SCALAR


def is_safe_integer(value: int) -> bool:
    return MIN_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER


def _normalize_integer(value: int) -> Any:
    return value if is_safe_integer(value) else str(value)


def _utc_offset_seconds(value: Any) -> int:
    offset = value.utcoffset()
    return int(offset.total_seconds()) if offset is not None else 0


def _zone_id(tzinfo: Any) -> Optional[str]:
    # pytz zones expose ``zone``, zoneinfo zones expose ``key``.
    return getattr(tzinfo, "zone", None) or getattr(tzinfo, "key", None)


def _normalize_temporal(value: Any) -> Dict[str, Any]:
    fields: Dict[str, Any] = {}
    has_date = isinstance(value, _DATE_TYPES)
    if has_date:
        fields["year"] = value.year
        fields["month"] = value.month
        fields["day"] = value.day
    if isinstance(value, _TIME_TYPES):
        nanosecond = getattr(value, "nanosecond", None)
        if nanosecond is None:
            nanosecond = value.microsecond * 1000
        fields["hour"] = value.hour
        fields["minute"] = value.minute
        fields["second"] = int(value.second)
        fields["nanosecond"] = nanosecond
        if value.tzinfo is not None:
            fields["timeZoneOffsetSeconds"] = _utc_offset_seconds(value)
            fields["timeZoneId"] = _zone_id(value.tzinfo)

    temporal = {key: normalize_value(field) for key, field in fields.items()}

    if has_date:
        # Wall-clock fields read as if they were UTC, then shifted by the offset.
        unix_tzo = calendar.timegm(
            (
                fields["year"],
                fields["month"],
                fields["day"],
                fields.get("hour", 0),
                fields.get("minute", 0),
                fields.get("second", 0),
            )
        ) * 1000 + fields.get("nanosecond", 0) // 1_000_000
        temporal["unixTZO"] = unix_tzo
        temporal["unixUTC"] = unix_tzo - fields.get("timeZoneOffsetSeconds", 0) * 1000

    return temporal


def _normalize_duration(value: Duration) -> Dict[str, Any]:
    return {
        "months": normalize_value(value.months),
        "days": normalize_value(value.days),
        "seconds": normalize_value(value.seconds),
        "nanoseconds": normalize_value(value.nanoseconds),
    }


def _normalize_point(value: Point) -> Dict[str, Any]:
    point: Dict[str, Any] = {"srid": getattr(value, "srid", None)}
    for axis, coordinate in zip(("x", "y", "z"), value):
        point[axis] = coordinate
    return point


def _normalize_entity(value: Any) -> Dict[str, Any]:
    # Identity, labels, type and endpoints are dropped; only properties survive.
    return {key: normalize_value(prop) for key, prop in value.items()}


def _normalize_path(value: Path) -> Dict[str, Any]:
    nodes = list(value.nodes)
    segments = [
        {
            "start": _normalize_entity(nodes[i]),
            "relationship": _normalize_entity(relationship),
            "end": _normalize_entity(nodes[i + 1]),
        }
        for i, relationship in enumerate(value.relationships)
    ]
    return {
        "start": _normalize_entity(value.start_node),
        "end": _normalize_entity(value.end_node),
        "segments": segments,
        "length": len(segments),
    }


def _normalize_sequence(value: Iterable[Any]) -> List[Any]:
    return [normalize_value(item) for item in value]


def _normalize_mapping(value: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: normalize_value(value[key]) for key in value.keys()}


def _identity(value: Any) -> Any:
    return value


_HANDLERS: Dict[ValueKind, Callable[[Any], Any]] = {
    ValueKind.TEMPORAL: _normalize_temporal,
    ValueKind.DURATION: _normalize_duration,
    ValueKind.POINT: _normalize_point,
    ValueKind.ENTITY: _normalize_entity,
    ValueKind.PATH: _normalize_path,
    ValueKind.INTEGER: _normalize_integer,
    ValueKind.SEQUENCE: _normalize_sequence,
    ValueKind.MAPPING: _normalize_mapping,
    ValueKind.SCALAR: _identity,
}


def normalize_value(value: Any) -> Any:
    """
    Recursively rewrite a driver value into plain Python values.

    Containers are rebuilt rather than mutated, so the input may be shared.

    Args:
        value: Any value returned by the neo4j driver

    Returns:
        A tree of dicts, lists, strings, numbers, booleans and None
    """
    return _HANDLERS[classify(value)](value)


def normalize_result_set(result: Any) -> Optional[List[Dict[str, Any]]]:
    """
    Turn a driver result into a list of row dicts.

    Args:
        result: An ``EagerResult``, any object with a ``records`` attribute,
            or an iterable of records

    Returns:
        One normalized dict per record, or None when there are no records
    """
    if result is None:
        return None
    records = getattr(result, "records", result)
    rows = [
        {key: normalize_value(record[key]) for key in record.keys()}
        for record in records
    ]
    return rows or None


def normalize_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Shallow clean-up of outgoing query parameters.

    Only top-level integers are rewritten (unsafe ones become strings);
    nested structures are passed through untouched.
    """
    if not params:
        return {}
    return {
        key: _normalize_integer(value)
        if classify(value) is ValueKind.INTEGER
        else value
        for key, value in params.items()
    }
