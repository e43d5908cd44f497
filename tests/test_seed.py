"""Tests for the development data seed."""

import pytest

from config import Config
from database import Database
from seed import populate_database
from tests.conftest import store_error


class TestPopulateDatabase:
    @pytest.mark.asyncio
    async def test_creates_full_dataset(self, client, store, dev_mode):
        summary = await populate_database(Database(client), 'user-1')

        assert summary.created == {
            'locations': 4,
            'water_conditions': 4,
            'hatch_events': 4,
            'guides': 2,
            'catch_records': 3,
            'reports': 3,
            'comments': 4,
        }
        assert summary.failed == {}
        assert summary.skipped == []

        location_ids = [row['id'] for row in store.tables['fishing_locations']]
        assert {row['location_id'] for row in store.tables['water_conditions']} == set(location_ids)
        report_ids = {row['id'] for row in store.tables['fishing_reports']}
        assert {row['report_id'] for row in store.tables['comments']} <= report_ids

    @pytest.mark.asyncio
    async def test_location_failure_skips_dependents(self, client, store, dev_mode):
        store.failures[('fishing_locations', 'insert')] = store_error()

        summary = await populate_database(Database(client), 'user-1')

        assert summary.count('locations') == 0
        assert summary.failed['locations'] == 4
        for table in ('water_conditions', 'catch_records', 'fishing_reports', 'comments'):
            assert store.calls_for(table, 'insert') == []
        assert summary.count('hatch_events') == 4
        assert summary.count('guides') == 2
        assert set(summary.skipped) == {'water_conditions', 'catch_records', 'reports', 'comments'}

    @pytest.mark.asyncio
    async def test_failed_location_only_skips_its_own_dependents(self, client, store, dev_mode):
        store.failures_once[('fishing_locations', 'insert')] = [store_error()]

        summary = await populate_database(Database(client), 'user-1')

        names = {row['id']: row['name'] for row in store.tables['fishing_locations']}
        assert sorted(names.values()) == ['Bitterroot River', 'Lake Como', 'Rock Creek']
        assert summary.failed == {'locations': 1}

        waters = sorted((row['temperature'], names[row['location_id']])
                        for row in store.tables['water_conditions'])
        assert waters == [(50, 'Rock Creek'), (52, 'Bitterroot River'), (68, 'Lake Como')]

        catches = sorted((row['species'], names[row['location_id']])
                         for row in store.tables['catch_records'])
        assert catches == [('Brown Trout', 'Bitterroot River'), ('Largemouth Bass', 'Lake Como')]

        reports = {row['id']: (row['title'], names[row['location_id']])
                   for row in store.tables['fishing_reports']}
        assert sorted(reports.values()) == [
            ('Bass Fishing Success at Lake Como', 'Lake Como'),
            ('High Water Streamer Fishing on Bitterroot', 'Bitterroot River'),
        ]
        commented = sorted(reports[row['report_id']][1] for row in store.tables['comments'])
        assert commented == ['Bitterroot River', 'Lake Como']

        assert summary.created == {
            'locations': 3,
            'water_conditions': 3,
            'hatch_events': 4,
            'guides': 2,
            'catch_records': 2,
            'reports': 2,
            'comments': 2,
        }

    @pytest.mark.asyncio
    async def test_partial_failure_is_counted(self, client, store, dev_mode):
        store.failures[('guides', 'insert')] = store_error('duplicate key value')

        summary = await populate_database(Database(client), 'user-1')

        assert summary.failed == {'guides': 2}
        assert summary.count('guides') == 0
        assert summary.count('comments') == 4

    @pytest.mark.asyncio
    async def test_without_user_only_shared_data(self, client, store, dev_mode):
        summary = await populate_database(Database(client))

        assert summary.count('locations') == 4
        assert summary.count('water_conditions') == 4
        assert 'catch_records' in summary.skipped
        assert 'comments' in summary.skipped
        assert store.calls_for('catch_records') == []

    @pytest.mark.asyncio
    async def test_requires_dev_mode(self, client, store, monkeypatch):
        monkeypatch.setattr(Config, 'DEV_MODE', False)

        with pytest.raises(RuntimeError, match="DEV_MODE"):
            await populate_database(Database(client), 'user-1')
        assert store.calls == []
