"""
Sample data for development databases

Creates entities in dependency order: locations first, then the water
conditions, catches and reports that point at them, then comments on the
reports. Hatch events and guides do not depend on anything. Each create is
best effort; a dependent step is skipped when its prerequisites produced no
rows.
"""
import asyncio
import sys
from dataclasses import dataclass, field
from datetime import date
from typing import Dict

import structlog

from config import Config
from database import Database, create_store_client
from errors import MappingError, StoreError
from logging_config import setup_logging
from models import (
    CatchRecord, Comment, Coordinates, FishingLocation, FishingReport, Guide, HatchEvent,
    WaterCondition, WeatherCondition,
)

logger = structlog.get_logger()

SAMPLE_LOCATIONS = [
    FishingLocation(
        name='Clearwater River',
        coordinates=Coordinates(46.7322, -114.0093),
        water_type='river',
        difficulty='intermediate',
        species=['Rainbow Trout', 'Cutthroat Trout'],
        access='public',
        regulations='Catch and release only for trout over 18 inches. Barbless hooks required.',
    ),
    FishingLocation(
        name='Lake Como',
        coordinates=Coordinates(46.3322, -114.1093),
        water_type='lake',
        difficulty='beginner',
        species=['Largemouth Bass', 'Perch', 'Bluegill'],
        access='public',
        regulations='Standard state regulations apply. Daily limit: 5 bass, 10 panfish.',
    ),
    FishingLocation(
        name='Bitterroot River',
        coordinates=Coordinates(46.5, -114.15),
        water_type='river',
        difficulty='advanced',
        species=['Brown Trout', 'Rainbow Trout', 'Mountain Whitefish'],
        access='guided',
        regulations='Guided trips only. Barbless hooks required. No bait fishing.',
    ),
    FishingLocation(
        name='Rock Creek',
        coordinates=Coordinates(46.65, -113.8),
        water_type='stream',
        difficulty='intermediate',
        species=['Brook Trout', 'Cutthroat Trout'],
        access='public',
        regulations='Fly fishing only. Catch and release for all native species.',
    ),
]

# (temperature, clarity, flow, level) per sample location, in order
SAMPLE_WATER_READINGS = [
    (55, 'clear', 'normal', 2.5),
    (68, 'slightly_stained', 'low', 1.2),
    (52, 'clear', 'high', 3.8),
    (50, 'clear', 'normal', 1.9),
]

SAMPLE_HATCHES = [
    HatchEvent(
        insect='Blue Winged Olive',
        region='Western Montana',
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        peak_time='Late afternoon',
        recommended_flies=['BWO Parachute #18', 'Pheasant Tail Nymph #16', 'RS2 #18'],
        notes='Best during overcast conditions and light rain.',
    ),
    HatchEvent(
        insect='Pale Morning Dun',
        region='Central Montana',
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        peak_time='Mid-morning',
        recommended_flies=['PMD Sparkle Dun #16', 'PMD Nymph #18', 'Barr Emerger #16'],
        notes='Strong emergence during warm, sunny mornings. Look for spinner falls in the evening.',
    ),
    HatchEvent(
        insect='Caddisfly',
        region='Southwestern Montana',
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        peak_time='Evening',
        recommended_flies=['Elk Hair Caddis #14', 'LaFontaine Sparkle Pupa #16', 'X-Caddis #14'],
        notes='Fish often feed aggressively on emerging pupae at twilight.',
    ),
    HatchEvent(
        insect='March Brown',
        region='Northern Montana',
        start_date=date(2025, 6, 1),
        end_date=date(2025, 6, 30),
        peak_time='Afternoon',
        recommended_flies=['March Brown Dun #12', "Hare's Ear Nymph #14", 'Partridge & Orange #14'],
        notes='Early season hatch. Best fishing during warm spring afternoons.',
    ),
]

SAMPLE_GUIDES = [
    Guide(
        name='Jake Morrison',
        location='Bozeman, MT',
        rating=4.9,
        specialties=['Dry Fly Fishing', 'Nymph Fishing', 'Brown Trout'],
        price_range='$500-600/day',
        contact='jake.morrison@montanaflies.com',
        verified=True,
        bio='Professional fly fishing guide with 15+ years experience on Montana rivers.',
        photos=['https://images.pexels.com/photos/1266810/pexels-photo-1266810.jpeg'],
    ),
    Guide(
        name='Sarah Chen',
        location='Missoula, MT',
        rating=4.8,
        specialties=['Streamer Fishing', 'Beginner Instruction', 'Photography'],
        price_range='$450-550/day',
        contact='sarah@bigskyfishing.com',
        verified=True,
        bio='Certified casting instructor with a background in aquatic biology.',
        photos=['https://images.pexels.com/photos/1458831/pexels-photo-1458831.jpeg'],
    ),
]

# (species, length, weight, fly, released, notes) per location index
SAMPLE_CATCHES = [
    (0, 'Rainbow Trout', 18.5, 2.1, 'Elk Hair Caddis #14', True,
     'Caught during evening caddis hatch. Fish rose aggressively to the dry fly.'),
    (1, 'Largemouth Bass', 16.0, 3.2, 'Deer Hair Popper #4', True,
     'Hit the popper right next to the lily pads.'),
    (2, 'Brown Trout', 21.0, 3.6, 'Woolly Bugger #6', True,
     'Swung a streamer through the tailout of a deep pool.'),
]

SAMPLE_WEATHER = WeatherCondition(
    temperature=60,
    humidity=70,
    pressure=29.9,
    wind_speed=5,
    wind_direction='NW',
    cloud_cover=50,
    condition='Partly Cloudy',
)

# (location index, title, description, conditions, success)
SAMPLE_REPORTS = [
    (0, 'Excellent Caddis Hatch on Clearwater',
     'The caddis hatch was incredible around 6 PM. Fish were rising everywhere and taking dry flies eagerly.',
     'Clear water, normal flow, 55°F, partly cloudy skies', 5),
    (1, 'Bass Fishing Success at Lake Como',
     'Found some good bass action near the lily pads. Poppers and streamers were both effective.',
     'Slightly stained water, low flow, 68°F, sunny', 4),
    (2, 'High Water Streamer Fishing on Bitterroot',
     'Running high but clear. Landed several nice browns on weighted woolly buggers.',
     'Clear water, high flow, 52°F, overcast', 4),
]

# (report index, content)
SAMPLE_COMMENTS = [
    (0, 'Sounds like an amazing day! What size caddis patterns were working best?'),
    (0, 'I love fishing the Clearwater during caddis hatches. The evening rise can be incredible!'),
    (1, 'Nice bass! Lake Como is always a reliable spot. Did you try any topwater patterns?'),
    (2, 'High water streamer fishing is so much fun. Those browns fight hard in the current!'),
]


@dataclass
class SeedSummary:
    """Number of rows created per entity type"""
    created: Dict[str, int] = field(default_factory=dict)
    failed: Dict[str, int] = field(default_factory=dict)
    skipped: list = field(default_factory=list)

    def count(self, kind):
        return self.created.get(kind, 0)


async def _create_each(summary, kind, repository, entities, label):
    """Create entities one by one, logging and counting failures

    Returns one entry per input entity: the persisted entity, or None where
    the create failed, so dependents can look up their own prerequisite.
    """
    created = []
    for entity in entities:
        try:
            result = await repository.create(entity)
        except (StoreError, MappingError) as e:
            summary.failed[kind] = summary.failed.get(kind, 0) + 1
            logger.error('seed_create_failed', kind=kind, name=label(entity), error=str(e))
            created.append(None)
            continue
        created.append(result)
        logger.info('seed_created', kind=kind, name=label(result))
    summary.created[kind] = sum(1 for result in created if result is not None)
    return created


def _skip(summary, kind, reason):
    summary.skipped.append(kind)
    summary.created[kind] = 0
    logger.warning('seed_skipped', kind=kind, reason=reason)


def _depends_on(parents, index, kind, parent_kind):
    """The created parent at `index`, or None (logged) when it is missing"""
    parent = parents[index] if index < len(parents) else None
    if parent is None:
        logger.warning('seed_dependent_skipped', kind=kind, parent=parent_kind, index=index)
    return parent


async def populate_database(db: Database, user_id: str = None) -> SeedSummary:
    """Fill the store with a consistent sample dataset for `user_id`"""
    if not Config.DEV_MODE:
        raise RuntimeError('Database seeding is only available with DEV_MODE enabled')

    summary = SeedSummary()
    logger.info('seed_started', user_id=user_id)

    locations = await _create_each(
        summary, 'locations', db.locations, SAMPLE_LOCATIONS, lambda loc: loc.name)
    any_location = any(location is not None for location in locations)

    if any_location:
        readings = []
        for index, (temperature, clarity, flow, level) in enumerate(SAMPLE_WATER_READINGS):
            location = _depends_on(locations, index, 'water_conditions', 'locations')
            if location is not None:
                readings.append(WaterCondition(location_id=location.id, temperature=temperature,
                                               clarity=clarity, flow=flow, level=level))
        await _create_each(
            summary, 'water_conditions', db.water_conditions, readings, lambda c: c.location_id)
    else:
        _skip(summary, 'water_conditions', 'no locations created')

    await _create_each(summary, 'hatch_events', db.hatches, SAMPLE_HATCHES, lambda h: h.insect)
    await _create_each(summary, 'guides', db.guides, SAMPLE_GUIDES, lambda g: g.name)

    reports = []
    report_slots = []
    if user_id and any_location:
        catches = []
        for index, species, length, weight, fly, released, notes in SAMPLE_CATCHES:
            location = _depends_on(locations, index, 'catch_records', 'locations')
            if location is None:
                continue
            catches.append(CatchRecord(
                user_id=user_id,
                location_id=location.id,
                species=species,
                length=length,
                weight=weight,
                fly_pattern=fly,
                is_released=released,
                notes=notes,
                weather=SAMPLE_WEATHER,
                coordinates=location.coordinates,
            ))
        await _create_each(summary, 'catch_records', db.catches, catches, lambda c: c.species)

        drafts = []
        for slot, (index, title, description, conditions, success) in enumerate(SAMPLE_REPORTS):
            location = _depends_on(locations, index, 'reports', 'locations')
            if location is None:
                continue
            report_slots.append(slot)
            drafts.append(FishingReport(
                user_id=user_id,
                location_id=location.id,
                title=title,
                description=description,
                conditions=conditions,
                success=success,
            ))
        reports = await _create_each(summary, 'reports', db.reports, drafts, lambda r: r.title)
    else:
        reason = 'no user id' if not user_id else 'no locations created'
        _skip(summary, 'catch_records', reason)
        _skip(summary, 'reports', reason)

    # Created reports by their position in SAMPLE_REPORTS
    reports_by_sample = [None] * len(SAMPLE_REPORTS)
    for slot, report in zip(report_slots, reports):
        reports_by_sample[slot] = report

    if any(report is not None for report in reports):
        comments = []
        for index, content in SAMPLE_COMMENTS:
            report = _depends_on(reports_by_sample, index, 'comments', 'reports')
            if report is not None:
                comments.append(Comment(report_id=report.id, user_id=user_id, content=content))
        await _create_each(summary, 'comments', db.comments, comments, lambda c: c.report_id)
    else:
        _skip(summary, 'comments', 'no reports created')

    logger.info('seed_complete', **summary.created)
    return summary


async def main(user_id=None):
    client = await create_store_client()
    summary = await populate_database(Database(client), user_id)
    for kind, count in summary.created.items():
        print(f"{kind}: {count} created")


if __name__ == '__main__':
    setup_logging()
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
