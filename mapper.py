"""
Row <-> domain object translation

Each table gets one RowMapper built from a declarative list of Field entries.
Rows are the dicts Supabase returns (snake_case columns, ISO date strings,
JSON blobs for embedded value objects); domain objects are the dataclasses in
models.py.
"""
import json
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional, Tuple

from errors import MappingError
from models import (
    ACCESS_TYPES, CLARITY_LEVELS, DIFFICULTIES, EXPERIENCE_LEVELS, FLOW_LEVELS, WATER_TYPES,
    CatchRecord, Comment, Coordinates, FishingLocation, FishingReport, Guide, HatchEvent,
    User, WaterCondition, WeatherCondition,
)

SCALAR = 'scalar'
DATETIME = 'datetime'
DATE = 'date'
LIST = 'list'
NESTED = 'nested'        # value object stored as a JSON column
FLATTENED = 'flattened'  # value object spread across several columns
JOINED = 'joined'        # read-only value pulled from a nested select

_MISSING = object()


def parse_datetime(value) -> datetime:
    """Parse an ISO-8601 timestamp; an offset is kept when present, naive values stay naive"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError as e:
            raise MappingError(f"Invalid timestamp {value!r}") from e
    raise MappingError(f"Expected an ISO timestamp, got {type(value).__name__}")


def parse_date(value) -> date:
    """Parse an ISO-8601 date, accepting full timestamps as well"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError as e:
            raise MappingError(f"Invalid date {value!r}") from e
    raise MappingError(f"Expected an ISO date, got {type(value).__name__}")


@dataclass(frozen=True)
class Field:
    """One attribute of a domain object and where it lives in a row"""
    attr: str
    column: Optional[str] = None
    kind: str = SCALAR
    default: Any = _MISSING
    read_only: bool = False
    choices: Optional[Tuple[str, ...]] = None
    nested: Optional['RowMapper'] = None
    path: Tuple[str, ...] = ()

    @property
    def key(self):
        return self.column or self.attr


class RowMapper:
    """Bidirectional mapping between storage rows and one dataclass"""

    def __init__(self, model, fields):
        self.model = model
        self.fields = list(fields)
        self._by_attr = {f.attr: f for f in self.fields}

    @property
    def columns(self):
        names = []
        for f in self.fields:
            if f.kind == FLATTENED:
                names.extend(f.nested.columns)
            elif not f.read_only:
                names.append(f.key)
        return names

    def column_for(self, attr):
        """Storage column holding a domain attribute"""
        f = self._by_attr.get(attr)
        if f is None or f.kind in (FLATTENED, JOINED):
            raise KeyError(f"{self.model.__name__} has no filterable attribute {attr!r}")
        return f.key

    # ------------------------------------------------------------------
    # Row -> domain
    # ------------------------------------------------------------------

    def to_domain(self, row):
        if not isinstance(row, dict):
            raise MappingError(f"Expected a {self.model.__name__} row, got {type(row).__name__}")

        values = {}
        for f in self.fields:
            value = self._read(f, row)
            if value is not _MISSING:
                values[f.attr] = value

        try:
            return self.model(**values)
        except (TypeError, ValueError) as e:
            raise MappingError(f"Invalid {self.model.__name__} row: {e}") from e

    def _read(self, f, row):
        if f.kind == FLATTENED:
            if all(row.get(column) is None for column in f.nested.columns):
                return None
            return f.nested.to_domain(row)

        if f.kind == JOINED:
            value = row
            for step in f.path:
                value = value.get(step) if isinstance(value, dict) else None
            if value is None:
                return f.default
            return value

        if f.key not in row:
            if f.kind == LIST:
                return []
            return f.default
        raw = row[f.key]

        if raw is None:
            if f.kind == LIST:
                return []
            return None if f.default is _MISSING else f.default

        if f.kind == DATETIME:
            return parse_datetime(raw)
        if f.kind == DATE:
            return parse_date(raw)
        if f.kind == LIST:
            if not isinstance(raw, (list, tuple)):
                raise MappingError(f"Column {f.key} should hold a list, got {type(raw).__name__}")
            if f.nested is not None:
                return [f.nested.to_domain(item) for item in raw]
            return list(raw)
        if f.kind == NESTED:
            if isinstance(raw, str):
                try:
                    raw = json.loads(raw)
                except ValueError as e:
                    raise MappingError(f"Column {f.key} holds malformed JSON") from e
            if raw == {}:
                return None
            return f.nested.to_domain(raw)

        if f.choices is not None and raw not in f.choices:
            raise MappingError(f"{self.model.__name__}.{f.attr} must be one of {f.choices}, got {raw!r}")
        return raw

    # ------------------------------------------------------------------
    # Domain -> row
    # ------------------------------------------------------------------

    def to_storage(self, obj, include_id=True):
        row = {}
        for f in self.fields:
            if f.read_only:
                continue
            value = getattr(obj, f.attr)
            if f.attr == 'id' and (value is None or not include_id):
                continue
            if f.kind == FLATTENED:
                if value is None:
                    row.update({column: None for column in f.nested.columns})
                else:
                    row.update(f.nested.to_storage(value))
                continue
            row[f.key] = self._write(f, value)
        return row

    def dump_changes(self, changes):
        """Storage columns for a partial update given as attribute -> value"""
        row = {}
        for attr, value in changes.items():
            f = self._by_attr.get(attr)
            if f is None or f.read_only:
                raise KeyError(f"{self.model.__name__} has no writable attribute {attr!r}")
            if f.kind == FLATTENED:
                row.update(f.nested.to_storage(value))
            else:
                row[f.key] = self._write(f, value)
        return row

    def _write(self, f, value):
        if value is None:
            return None
        if f.kind in (DATETIME, DATE):
            return value.isoformat()
        if f.kind == NESTED:
            return f.nested.to_storage(value)
        if f.kind == LIST:
            if f.nested is not None:
                return [f.nested.to_storage(item) for item in value]
            return list(value)
        return value


# ----------------------------------------------------------------------
# Value objects
# ----------------------------------------------------------------------

COORDINATES_MAPPER = RowMapper(Coordinates, [
    Field('latitude'),
    Field('longitude'),
])

# Embedded JSON keeps the camelCase keys the mobile client writes
WEATHER_MAPPER = RowMapper(WeatherCondition, [
    Field('temperature'),
    Field('humidity'),
    Field('pressure'),
    Field('wind_speed', 'windSpeed'),
    Field('wind_direction', 'windDirection'),
    Field('cloud_cover', 'cloudCover'),
    Field('condition'),
])

WATER_SNAPSHOT_MAPPER = RowMapper(WaterCondition, [
    Field('id'),
    Field('location_id', 'locationId'),
    Field('temperature'),
    Field('clarity', choices=CLARITY_LEVELS),
    Field('flow', choices=FLOW_LEVELS),
    Field('level'),
    Field('last_updated', 'lastUpdated', kind=DATETIME),
])

# ----------------------------------------------------------------------
# Tables
# ----------------------------------------------------------------------

LOCATION_MAPPER = RowMapper(FishingLocation, [
    Field('id'),
    Field('name'),
    Field('coordinates', kind=FLATTENED, nested=COORDINATES_MAPPER),
    Field('water_type', 'type', choices=WATER_TYPES),
    Field('difficulty', choices=DIFFICULTIES),
    Field('species', kind=LIST),
    Field('access', choices=ACCESS_TYPES),
    Field('regulations'),
    Field('rating'),
    Field('review_count'),
])

WATER_CONDITION_MAPPER = RowMapper(WaterCondition, [
    Field('id'),
    Field('location_id'),
    Field('temperature'),
    Field('clarity', choices=CLARITY_LEVELS),
    Field('flow', choices=FLOW_LEVELS),
    Field('level'),
    Field('last_updated', kind=DATETIME),
])

CATCH_RECORD_MAPPER = RowMapper(CatchRecord, [
    Field('id'),
    Field('user_id'),
    Field('location_id'),
    Field('species'),
    Field('length'),
    Field('weight'),
    Field('photos', kind=LIST),
    Field('fly_pattern'),
    Field('weather', kind=NESTED, nested=WEATHER_MAPPER),
    Field('water_condition', kind=NESTED, nested=WATER_SNAPSHOT_MAPPER),
    Field('notes'),
    Field('is_released'),
    Field('timestamp', kind=DATETIME),
    Field('coordinates', kind=NESTED, nested=COORDINATES_MAPPER),
])

COMMENT_MAPPER = RowMapper(Comment, [
    Field('id'),
    Field('report_id'),
    Field('user_id'),
    Field('username', kind=JOINED, path=('users', 'username'), default='Anonymous', read_only=True),
    Field('content'),
    Field('timestamp', kind=DATETIME),
])

REPORT_MAPPER = RowMapper(FishingReport, [
    Field('id'),
    Field('user_id'),
    Field('location_id'),
    Field('title'),
    Field('description'),
    Field('conditions'),
    Field('success'),
    Field('timestamp', kind=DATETIME),
    Field('photos', kind=LIST),
    Field('likes'),
    Field('comments', kind=LIST, nested=COMMENT_MAPPER, read_only=True),
])

HATCH_EVENT_MAPPER = RowMapper(HatchEvent, [
    Field('id'),
    Field('insect'),
    Field('region'),
    Field('start_date', kind=DATE),
    Field('end_date', kind=DATE),
    Field('peak_time'),
    Field('recommended_flies', kind=LIST),
    Field('notes'),
])

GUIDE_MAPPER = RowMapper(Guide, [
    Field('id'),
    Field('name'),
    Field('location'),
    Field('rating'),
    Field('specialties', kind=LIST),
    Field('price_range'),
    Field('contact'),
    Field('verified'),
    Field('bio'),
    Field('photos', kind=LIST),
])

USER_MAPPER = RowMapper(User, [
    Field('id'),
    Field('username'),
    Field('email'),
    Field('avatar'),
    Field('location'),
    Field('experience', choices=EXPERIENCE_LEVELS),
    Field('total_catches'),
    Field('favorite_species', kind=LIST),
    Field('join_date', kind=DATETIME),
])
