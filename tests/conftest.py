# -*- coding: utf-8 -*-
"""Pytest configuration and shared fixtures for the disaster feed tests."""

import asyncio
import copy
from typing import Any, Dict, List, Optional

import pytest

from prohori.disaster_feed.config import DisasterFeedConfig, reset_config
from prohori.disaster_feed.setup import build_source_definitions
from prohori.disaster_feed.source_adapter import SourceAdapter


class FakeDocumentStore:
    """In-memory document store with optional per-collection failures and delays."""

    def __init__(
        self,
        collections: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.collections = collections or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.calls: List[str] = []
        self.closed = False

    async def find(self, collection: str) -> List[Dict[str, Any]]:
        self.calls.append(collection)
        delay = self.delays.get(collection)
        if delay:
            await asyncio.sleep(delay)
        if collection in self.failures:
            raise self.failures[collection]
        return copy.deepcopy(self.collections.get(collection, []))

    async def close(self) -> None:
        self.closed = True


SAMPLE_DOCUMENTS: Dict[str, List[Dict[str, Any]]] = {
    "earthquakes": [
        {
            "_id": {"$oid": "665f1c2ab0e4a1d2c3f40001"},
            "title": "Sylhet tremor",
            "place": "Sylhet",
            "magnitude": 6.0,
            "latitude": 24.9,
            "longitude": 91.87,
            "location": {"type": "Point", "coordinates": [91.87, 24.9]},
            "dateTime": "2024-05-01T10:00:00Z",
            "isVisible": 1,
            "visible": 1,
        },
        {
            "_id": "eq-placeholder",
            "magnitude": 4.2,
            "location": {"type": "Point", "coordinates": [0, 0]},
            "isVisible": 1,
        },
    ],
    "disasterflood": [
        {
            "_id": "fl-1",
            "name": "Sirajganj flood",
            "location": "Sirajganj",
            "latitude": 24.45,
            "longitude": 89.7,
            "dangerLevel": 8,
            "visible": True,
            "createdAt": "2024-07-01T00:00:00Z",
        },
        {
            "_id": "fl-hidden",
            "name": "Unreviewed flood report",
            "latitude": 23.1,
            "longitude": 90.2,
            "isVisible": 0,
        },
    ],
    "disastercyclone": [
        {
            "_id": "cy-1",
            "name": "Cyclone Remal",
            "location": "Khulna",
            "coordinates": [89.55, 22.8],
            "dangerLevel": 9,
            "visible": "true",
        },
    ],
    "disasterlandslide": [
        {
            "_id": "ls-1",
            "name": "Rangamati landslide",
            "latitude": "22.65",
            "longitude": "92.2",
            "severity": 7,
            "isVisible": "1",
        },
    ],
    "disastertsunami": [
        {
            "_id": "ts-1",
            "name": "Tsunami watch",
            "latitude": 21.5,
            "longitude": 91.9,
            "dangerLevel": 4,
            "visible": True,
        },
    ],
    "disasterfire": [
        {
            "_id": "fi-1",
            "name": "Garment factory fire",
            "location": "Dhaka",
            "latitude": 23.81,
            "longitude": 90.41,
            "dangerLevel": 6,
            "visible": True,
        },
    ],
    "disasterother": [
        {
            "_id": "ot-1",
            "name": "Chemical spill",
            "location": "Chattogram",
            "latitude": 22.36,
            "longitude": 91.78,
            "visible": True,
        },
    ],
}

# One visible record with coordinates per category.
EXPECTED_VISIBLE_IDS = {
    ("earthquake", "665f1c2ab0e4a1d2c3f40001"),
    ("flood", "fl-1"),
    ("cyclone", "cy-1"),
    ("landslide", "ls-1"),
    ("tsunami", "ts-1"),
    ("fire", "fi-1"),
    ("other", "ot-1"),
}


@pytest.fixture(autouse=True)
def _reset_config_singleton():
    """Keep the configuration singleton isolated between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def sample_documents():
    return copy.deepcopy(SAMPLE_DOCUMENTS)


@pytest.fixture
def feed_config():
    return DisasterFeedConfig(source_timeout_seconds=1.0, risk_seed=7)


@pytest.fixture
def fake_store(sample_documents):
    return FakeDocumentStore(sample_documents)


def make_adapters(store, config: Optional[DisasterFeedConfig] = None):
    """One adapter per default source, all reading from ``store``."""
    config = config or DisasterFeedConfig()
    return [
        SourceAdapter(definition, store)
        for definition in build_source_definitions(config)
    ]


@pytest.fixture
def adapters(fake_store):
    return make_adapters(fake_store)


@pytest.fixture
def store_factory():
    """Build FakeDocumentStore instances with custom collections or failures."""
    def _factory(collections=None, failures=None, delays=None):
        if collections is None:
            collections = copy.deepcopy(SAMPLE_DOCUMENTS)
        return FakeDocumentStore(collections, failures=failures, delays=delays)
    return _factory


@pytest.fixture
def adapter_factory():
    return make_adapters


@pytest.fixture
def expected_visible_ids():
    return set(EXPECTED_VISIBLE_IDS)
