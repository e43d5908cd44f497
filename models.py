"""
Data models for the fly fishing companion
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

WATER_TYPES = ('river', 'lake', 'stream', 'pond')
DIFFICULTIES = ('beginner', 'intermediate', 'advanced')
ACCESS_TYPES = ('public', 'private', 'guided')
CLARITY_LEVELS = ('clear', 'slightly_stained', 'stained', 'muddy')
FLOW_LEVELS = ('low', 'normal', 'high', 'flood')
EXPERIENCE_LEVELS = ('beginner', 'intermediate', 'advanced', 'expert')

# Fly type and hook size to tie on for a hatching insect
INSECT_FLY_SIZES = {
    'Blue Wing Olive': 'Mayfly #18-20',
    'Sulphur': 'Mayfly #16-18',
    'March Brown': 'Mayfly #10-12',
    'Caddis': 'Caddis #14-18',
    'Little Black Stonefly': 'Stonefly #12-16',
}
DEFAULT_FLY_SIZE = 'General Attractor #12-16'


def recommended_fly_size(insect: str) -> str:
    """Fly type and size for an insect, falling back to a general attractor"""
    return INSECT_FLY_SIZES.get(insect, DEFAULT_FLY_SIZE)


@dataclass
class Coordinates:
    """Latitude/longitude pair"""
    latitude: float
    longitude: float


@dataclass
class WeatherCondition:
    """Weather snapshot taken with a catch"""
    temperature: float
    humidity: float
    pressure: float
    wind_speed: float
    wind_direction: str
    cloud_cover: float
    condition: str


@dataclass
class FishingLocation:
    """Fishing location model"""
    name: str
    coordinates: Coordinates
    water_type: str  # river, lake, stream, pond
    difficulty: str  # beginner, intermediate, advanced
    access: str  # public, private, guided
    species: List[str] = field(default_factory=list)
    regulations: str = ''
    rating: float = 0.0
    review_count: int = 0
    id: Optional[str] = None

    def __post_init__(self):
        if self.review_count < 0:
            raise ValueError(f"review_count must be non-negative, got {self.review_count}")


@dataclass
class WaterCondition:
    """Water condition reading for a location"""
    location_id: str
    temperature: float
    clarity: str  # clear, slightly_stained, stained, muddy
    flow: str  # low, normal, high, flood
    level: float = 0.0
    last_updated: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class CatchRecord:
    """Catch model"""
    user_id: str
    location_id: str
    species: str
    fly_pattern: str
    length: Optional[float] = None
    weight: Optional[float] = None
    photos: List[str] = field(default_factory=list)
    weather: Optional[WeatherCondition] = None
    water_condition: Optional[WaterCondition] = None
    notes: str = ''
    is_released: bool = False
    timestamp: Optional[datetime] = None
    coordinates: Optional[Coordinates] = None
    id: Optional[str] = None


@dataclass
class Comment:
    """Comment on a fishing report"""
    report_id: str
    user_id: str
    content: str
    username: str = 'Anonymous'  # resolved from users at read time
    timestamp: Optional[datetime] = None
    id: Optional[str] = None


@dataclass
class FishingReport:
    """Community fishing report"""
    user_id: str
    location_id: str
    title: str
    description: str
    conditions: str = ''
    success: int = 3  # 1-5 scale
    timestamp: Optional[datetime] = None
    photos: List[str] = field(default_factory=list)
    likes: int = 0
    comments: List[Comment] = field(default_factory=list)
    id: Optional[str] = None

    def __post_init__(self):
        if not 1 <= self.success <= 5:
            raise ValueError(f"success must be between 1 and 5, got {self.success}")


@dataclass
class HatchEvent:
    """Insect hatch window for a region"""
    insect: str
    region: str
    start_date: date
    end_date: date
    peak_time: str = ''
    recommended_flies: List[str] = field(default_factory=list)
    notes: str = ''
    id: Optional[str] = None

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise ValueError(
                f"Hatch for {self.insect} ends ({self.end_date}) before it starts ({self.start_date})"
            )

    def is_active(self, on=None) -> bool:
        """True when `on` (default today) falls inside the hatch window"""
        if on is None:
            on = date.today()
        elif isinstance(on, datetime):
            on = on.date()
        return self.start_date <= on <= self.end_date


@dataclass
class Guide:
    """Fishing guide listing"""
    name: str
    location: str
    rating: float = 0.0
    specialties: List[str] = field(default_factory=list)
    price_range: str = ''
    contact: str = ''
    verified: bool = False
    bio: str = ''
    photos: List[str] = field(default_factory=list)
    id: Optional[str] = None


@dataclass
class User:
    """User profile, keyed by the auth identity id"""
    id: str
    username: Optional[str]
    email: Optional[str]
    avatar: Optional[str] = None
    location: Optional[str] = None
    experience: str = 'beginner'  # beginner, intermediate, advanced, expert
    total_catches: int = 0
    favorite_species: List[str] = field(default_factory=list)
    join_date: Optional[datetime] = None
