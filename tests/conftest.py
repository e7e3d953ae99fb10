"""Common test fixtures and utilities."""

from __future__ import annotations

from typing import Any

import pytest


@pytest.fixture
def sample_data_dir(tmp_path):
    """Create a temporary directory with sample data."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    return data_dir


@pytest.fixture
def cluster_points() -> list[dict[str, Any]]:
    """A tight high-value trio near Bangkok and a low-value pair ~95 km away.

    Trio members are 150-250 m apart; D and E are ~1.55 km apart.
    """
    return [
        {"id": "A", "lat": 13.800, "lng": 100.500, "value": 10},
        {"id": "B", "lat": 13.801, "lng": 100.501, "value": 10},
        {"id": "C", "lat": 13.802, "lng": 100.499, "value": 10},
        {"id": "D", "lat": 14.500, "lng": 101.200, "value": 1},
        {"id": "E", "lat": 14.510, "lng": 101.210, "value": 1},
    ]


@pytest.fixture
def square_points() -> list[dict[str, Any]]:
    """Corners and centre of a ~1 km square on the equator."""
    return [
        {"lat": 0.0, "lng": 0.0},
        {"lat": 0.0, "lng": 0.009},
        {"lat": 0.009, "lng": 0.0},
        {"lat": 0.009, "lng": 0.009},
        {"lat": 0.0045, "lng": 0.0045},
    ]


@pytest.fixture
def incident_points() -> list[dict[str, Any]]:
    """Chicago-area incident counts with mixed values."""
    return [
        {"id": 1, "lat": 41.8781, "lng": -87.6298, "value": 10.0, "category": "A"},
        {"id": 2, "lat": 41.8800, "lng": -87.6300, "value": 20.0, "category": "B"},
        {"id": 3, "lat": 41.8820, "lng": -87.6310, "value": 15.0, "category": "A"},
        {"id": 4, "lat": 41.8790, "lng": -87.6295, "value": 25.0, "category": "B"},
        {"id": 5, "lat": 41.8810, "lng": -87.6305, "value": 30.0, "category": "A"},
        {"id": 6, "lat": 41.9500, "lng": -87.7000, "value": 1.0, "category": "C"},
    ]
