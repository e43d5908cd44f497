"""
Supabase data access: one repository per table
"""
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import List, Optional

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from config import Config
from errors import MappingError, StoreError
from mapper import (
    CATCH_RECORD_MAPPER, COMMENT_MAPPER, GUIDE_MAPPER, HATCH_EVENT_MAPPER, LOCATION_MAPPER,
    REPORT_MAPPER, USER_MAPPER, WATER_CONDITION_MAPPER,
)
from models import User

logger = structlog.get_logger()

# PostgREST code for "single() matched no rows"
NO_ROWS = 'PGRST116'


async def create_store_client() -> AsyncClient:
    """Build a Supabase client from the environment"""
    Config.validate()
    return await acreate_client(Config.SUPABASE_URL, Config.SUPABASE_KEY)


def _now():
    return datetime.now(timezone.utc)


class Repository:
    """Base repository for one Supabase table

    Reads degrade to an empty list when the store fails; the failure is kept
    in `last_error` until the next successful read. Single-row reads and
    writes raise StoreError.

    `last_error` belongs to the repository, not to a call: when reads on the
    same repository run concurrently it reflects whichever finished last.
    Callers fanning out with asyncio.gather should use one Database per
    task when they need each outcome.
    """

    table = None
    mapper = None
    select_columns = '*'
    order_column = None
    descending = True

    def __init__(self, supabase_client):
        self.supabase = supabase_client
        self.last_error = None

    def _select(self):
        return self.supabase.table(self.table).select(self.select_columns)

    async def _execute(self, operation, query):
        try:
            return await query.execute()
        except (APIError, httpx.HTTPError) as e:
            raise StoreError(operation, self.table, e) from e

    def _map_rows(self, rows):
        entities = []
        for row in rows:
            try:
                entities.append(self.mapper.to_domain(row))
            except MappingError as e:
                logger.warning('row_skipped', table=self.table, row_id=row.get('id'), error=str(e))
        return entities

    async def _fetch(self, query, operation='list'):
        try:
            response = await self._execute(operation, query)
        except StoreError as e:
            logger.error('store_read_failed', table=self.table, operation=operation, error=str(e))
            self.last_error = e
            return []

        self.last_error = None
        return self._map_rows(response.data or [])

    async def list(self, limit: Optional[int] = None, **filters) -> List:
        """All rows in stable order, optionally filtered by attribute equality"""
        query = self._select()
        for attr, value in filters.items():
            query = query.eq(self.mapper.column_for(attr), value)
        if self.order_column:
            query = query.order(self.order_column, desc=self.descending)
        if limit:
            query = query.limit(limit)
        return await self._fetch(query)

    async def get_by_id(self, entity_id: str):
        """Single row by id; None when no row matches"""
        try:
            response = await self._select().eq('id', entity_id).single().execute()
        except APIError as e:
            if e.code == NO_ROWS:
                return None
            logger.error('store_get_failed', table=self.table, id=entity_id, error=str(e))
            raise StoreError('get', self.table, e) from e
        except httpx.HTTPError as e:
            logger.error('store_get_failed', table=self.table, id=entity_id, error=str(e))
            raise StoreError('get', self.table, e) from e

        if not response.data:
            return None
        return self.mapper.to_domain(response.data)

    def _prepare(self, entity):
        """Hook for filling store-side defaults before insert"""
        return entity

    async def create(self, entity):
        """Insert and return the persisted row as the store sees it"""
        row = self.mapper.to_storage(self._prepare(entity))
        try:
            response = await self._execute('create', self.supabase.table(self.table).insert(row))
        except StoreError as e:
            logger.error('store_create_failed', table=self.table, error=str(e))
            raise

        if not response.data:
            raise StoreError('create', self.table, 'no row returned')
        return self.mapper.to_domain(response.data[0])


class LocationRepository(Repository):
    table = 'fishing_locations'
    mapper = LOCATION_MAPPER
    order_column = 'rating'


class WaterConditionRepository(Repository):
    table = 'water_conditions'
    mapper = WATER_CONDITION_MAPPER
    order_column = 'last_updated'

    def _prepare(self, condition):
        if condition.last_updated is None:
            return replace(condition, last_updated=_now())
        return condition

    async def current_for_location(self, location_id: str):
        """Most recent reading for a location, or None"""
        query = self._select()\
            .eq('location_id', location_id)\
            .order('last_updated', desc=True)\
            .limit(1)
        try:
            response = await self._execute('current', query)
        except StoreError as e:
            logger.error('store_get_failed', table=self.table, location_id=location_id, error=str(e))
            raise

        if not response.data:
            return None
        return self.mapper.to_domain(response.data[0])


class CatchRecordRepository(Repository):
    table = 'catch_records'
    mapper = CATCH_RECORD_MAPPER
    order_column = 'timestamp'

    def _prepare(self, record):
        if record.timestamp is None:
            return replace(record, timestamp=_now())
        return record

    async def for_location(self, location_id: str):
        return await self.list(location_id=location_id)


class CommentRepository(Repository):
    table = 'comments'
    mapper = COMMENT_MAPPER
    select_columns = '*, users(username)'
    order_column = 'timestamp'
    descending = False

    def _prepare(self, comment):
        if comment.timestamp is None:
            return replace(comment, timestamp=_now())
        return comment

    async def create(self, comment):
        created = await super().create(comment)
        # insert() cannot embed the author, so read it back with the join
        joined = await self.get_by_id(created.id)
        return joined or created


class ReportRepository(Repository):
    table = 'fishing_reports'
    mapper = REPORT_MAPPER
    select_columns = '*, comments(id, report_id, user_id, content, timestamp, users(username))'
    order_column = 'timestamp'

    def _prepare(self, report):
        if report.timestamp is None:
            return replace(report, timestamp=_now())
        return report

    def _map_rows(self, rows):
        reports = super()._map_rows(rows)
        for report in reports:
            self._sort_comments(report)
        return reports

    async def get_by_id(self, entity_id: str):
        report = await super().get_by_id(entity_id)
        if report is not None:
            self._sort_comments(report)
        return report

    @staticmethod
    def _sort_comments(report):
        # Undated comments first
        report.comments.sort(key=lambda comment: (comment.timestamp is not None, comment.timestamp))


class HatchEventRepository(Repository):
    table = 'hatch_events'
    mapper = HATCH_EVENT_MAPPER
    order_column = 'start_date'
    descending = False

    async def active(self, on: Optional[date] = None):
        """Hatches whose window contains `on` (default today)"""
        return [event for event in await self.list() if event.is_active(on)]


class GuideRepository(Repository):
    table = 'guides'
    mapper = GUIDE_MAPPER
    order_column = 'rating'

    async def verified(self):
        return await self.list(verified=True)


class UserRepository(Repository):
    table = 'users'
    mapper = USER_MAPPER
    order_column = 'join_date'

    def _prepare(self, user):
        if user.join_date is None:
            return replace(user, join_date=_now())
        return user

    async def update_profile(self, user_id: str, **changes) -> Optional[User]:
        """Apply profile changes; None when the user does not exist"""
        row = self.mapper.dump_changes(changes)
        query = self.supabase.table(self.table).update(row).eq('id', user_id)
        try:
            response = await self._execute('update', query)
        except StoreError as e:
            logger.error('store_update_failed', table=self.table, id=user_id, error=str(e))
            raise

        if not response.data:
            return None
        return self.mapper.to_domain(response.data[0])

    async def ensure_profile(self, auth_user) -> User:
        """Profile for an authenticated identity, created on first sign in"""
        existing = await self.get_by_id(auth_user.id)
        if existing is not None:
            return existing

        metadata = getattr(auth_user, 'user_metadata', None) or {}
        email = getattr(auth_user, 'email', None)
        username = metadata.get('username') or (email.split('@')[0] if email else None)
        logger.info('user_profile_created', user_id=auth_user.id)
        return await self.create(User(id=auth_user.id, username=username, email=email))

    async def current_user(self, auth_service) -> Optional[User]:
        """Profile of the signed-in user, or None without a session"""
        session = await auth_service.get_session()
        if session is None or session.user is None:
            return None
        return await self.get_by_id(session.user.id)


class Database:
    """All repositories sharing one Supabase client"""

    def __init__(self, supabase_client):
        self.supabase = supabase_client
        self.locations = LocationRepository(supabase_client)
        self.water_conditions = WaterConditionRepository(supabase_client)
        self.catches = CatchRecordRepository(supabase_client)
        self.reports = ReportRepository(supabase_client)
        self.comments = CommentRepository(supabase_client)
        self.hatches = HatchEventRepository(supabase_client)
        self.guides = GuideRepository(supabase_client)
        self.users = UserRepository(supabase_client)
