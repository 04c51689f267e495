"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

from travel_analytics.models.data_models import (
    HistoricalActivity, JournalEntry, LocationAnalyticsRecord, LocationMetrics,
    SavedLocation, Trip, TripDestination
)
from travel_analytics.utils.config import Config

BASE_DATE = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def mock_config():
    """Mock configuration for testing."""
    config = Mock(spec=Config)
    config.log_level = "ERROR"
    config.max_queue_size = 10
    config.worker_concurrency = 1
    config.tick_interval = 0.01
    config.job_timeout_seconds = 5.0
    config.subscriber_buffer_size = 10
    config.sensitivity_delta = 0.10
    config.min_pattern_confidence = 0.6
    return config


@pytest.fixture
def test_config():
    """Real configuration tuned for fast scheduler tests."""
    config = Config()
    config.set("tick_interval", 0.01)
    config.set("job_timeout_seconds", 5.0)
    config.set("max_queue_size", 100)
    config.set("worker_concurrency", 1)
    config.set("subscriber_buffer_size", 100)
    return config


@pytest.fixture
def tie_matrix():
    """Two alternatives that trade cost against quality and tie at 0.5."""
    return {
        "user_id": "user-1",
        "name": "Cost vs quality",
        "criteria": {
            "cost": {"weight": 0.5, "scale": "lower_better"},
            "quality": {"weight": 0.5, "scale": "higher_better"},
        },
        "alternatives": {
            "A": {"name": "Option A", "data": {"cost": 100, "quality": 0.9}},
            "B": {"name": "Option B", "data": {"cost": 50, "quality": 0.5}},
        },
    }


@pytest.fixture
def sample_matrix():
    """Three city matrix; Lisbon edges out Bangkok."""
    return {
        "user_id": "user-1",
        "name": "Where to spend the winter",
        "matrix_type": "location",
        "criteria": {
            "cost": {"weight": 0.4, "scale": "lower_better", "description": "Monthly budget"},
            "climate": {"weight": 0.35, "scale": "higher_better"},
            "safety": {"weight": 0.25, "scale": "higher_better"},
        },
        "alternatives": {
            "lisbon": {"name": "Lisbon", "data": {"cost": 1800, "climate": 0.8, "safety": 0.9}},
            "bangkok": {"name": "Bangkok", "data": {"cost": 1200, "climate": 0.9, "safety": 0.7}},
            "oslo": {"name": "Oslo", "data": {"cost": 3200, "climate": 0.2, "safety": 0.95}},
        },
    }


@pytest.fixture
def sample_locations():
    """Location metrics for comparison tests."""
    return [
        LocationMetrics(
            location_id="lisbon",
            name="Lisbon",
            affordability_score=0.6,
            weather_rating=0.9,
            safety_rating=0.8,
            average_sentiment=0.6,
            total_visits=4,
        ),
        LocationMetrics(
            location_id="oslo",
            name="Oslo",
            affordability_score=0.2,
            weather_rating=0.3,
            safety_rating=0.95,
            average_sentiment=0.2,
            total_visits=1,
        ),
        LocationMetrics(
            location_id="hanoi",
            name="Hanoi",
            affordability_score=0.9,
            weather_rating=0.7,
            safety_rating=0.6,
            average_sentiment=-0.2,
            total_visits=2,
        ),
    ]


@pytest.fixture
def trip_factory():
    """Build a trip starting ``days_ago`` days before the base date."""
    def make_trip(trip_id, days_ago, location_id, country=None, length=5):
        start = BASE_DATE - timedelta(days=days_ago)
        return Trip(
            id=trip_id,
            start_date=start,
            end_date=start + timedelta(days=length),
            destinations=[TripDestination(location_id=location_id, country=country)],
        )
    return make_trip


@pytest.fixture
def entry_factory():
    """Build journal entries newest first from a list of texts."""
    def make_entries(texts, location_id=None):
        return [
            JournalEntry(
                id=f"entry-{i}",
                content=text,
                location_id=location_id,
                created_at=BASE_DATE - timedelta(days=i),
            )
            for i, text in enumerate(texts)
        ]
    return make_entries


@pytest.fixture
def saved_factory():
    """Build saved locations from (location_id, country) pairs."""
    def make_saved(pairs):
        return [
            SavedLocation(location_id=location_id, country=country)
            for location_id, country in pairs
        ]
    return make_saved


@pytest.fixture
def sample_activity(trip_factory):
    """History of a warm-climate, budget-conscious, fast-deciding traveler.

    Lists are newest first. Trips start every 25 days and last 5 days; each
    trip's location was saved three days before departure.
    """
    trips = [
        trip_factory("t5", 20, "loc-5", "Italy"),
        trip_factory("t4", 45, "loc-4", "Spain"),
        trip_factory("t3", 70, "loc-3", "Portugal"),
        trip_factory("t2", 95, "loc-2", "Spain"),
        trip_factory("t1", 120, "loc-1", "Spain"),
    ]

    saved = [
        SavedLocation(
            location_id=trip.destinations[0].location_id,
            country=trip.destinations[0].country,
            climate="warm",
            cost_level="low",
            saved_at=trip.start_date - timedelta(days=3),
        )
        for trip in trips
    ]
    saved.append(SavedLocation(location_id="loc-6", country="Spain", climate="warm", cost_level="medium",
                               saved_at=BASE_DATE - timedelta(days=200)))

    weather = [0.9, 0.8, 0.85, 0.75, 0.9, 0.8, 0.85]
    affordability = [0.2, 0.25, 0.15, 0.3, 0.2, 0.1, 0.2]
    visits = [8, 5, 3, 2, 1, 4, 6]
    analytics = [
        LocationAnalyticsRecord(
            location_id=f"loc-{i + 1}",
            total_visits=visits[i],
            weather_rating=weather[i],
            affordability_score=affordability[i],
            culture_rating=0.6,
            safety_rating=0.8,
            transport_rating=0.5,
            activity_preferences={"outdoor": 0.9, "cultural": 0.4, "food": 0.6},
        )
        for i in range(7)
    ]

    entries = [
        JournalEntry(id="e1", content="Amazing food and a planned itinerary", location_id="loc-5"),
        JournalEntry(id="e2", content="Terrible weather but friends made it fun", location_id="loc-4"),
        JournalEntry(id="e3", content="Quiet and peaceful, comfortable hotel", location_id="loc-3"),
        JournalEntry(id="e4", content="Incredible museums", location_id="loc-2"),
        JournalEntry(id="e5", content="Nice walk by the river", location_id="loc-1"),
        JournalEntry(id="e6", content="Just ok", location_id="loc-1"),
    ]

    return HistoricalActivity(
        journal_entries=entries,
        trips=trips,
        saved_locations=saved,
        location_analytics=analytics,
    )


@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Setup test environment."""
    monkeypatch.setenv("LOG_LEVEL", "ERROR")  # Reduce log noise in tests
    monkeypatch.setenv("MIN_PATTERN_CONFIDENCE", "0.6")
    monkeypatch.setenv("SENSITIVITY_DELTA", "0.10")
