"""
Shared fixtures for the regionmap tests.

Nothing here touches the network: the provider loader is reset around every
test and widgets receive loaders with injected load functions.
"""

from types import MappingProxyType

import pytest

from regionmap.config import ChartConfig
from regionmap.loader import ProviderLoader, reset_provider_loader
from regionmap.models import RegionRecord


def _square(lon, lat, size=1.0):
    return {
        "type": "Polygon",
        "coordinates": [
            [[lon, lat], [lon + size, lat], [lon + size, lat + size], [lon, lat + size], [lon, lat]]
        ],
    }


def _payload(region_id, geometry):
    return {"id": region_id, "geometry": geometry}


@pytest.fixture(autouse=True)
def fresh_loader():
    """The shared loader is process-wide; isolate it per test."""
    reset_provider_loader()
    yield
    reset_provider_loader()


@pytest.fixture()
def square():
    return _square


@pytest.fixture()
def make_record():
    def factory(region_id, level=1, parent_id=None, *, lon=37.0, lat=55.0, size=1.0, metric=0.0, name=None, color=None):
        return RegionRecord(
            id=region_id,
            geojson=_payload(region_id, _square(lon, lat, size)),
            level=level,
            display_name=name or f"Region {region_id}",
            region_name=name,
            parent_id=parent_id,
            metric_value=metric,
            color=color,
            extras=MappingProxyType({}),
        )

    return factory


@pytest.fixture()
def hierarchy(make_record):
    """Three levels with complete parent chains: 1 -> 2 -> 3."""
    return [
        make_record("ru", 1, name="Russia", lon=30.0, lat=50.0, size=20.0, metric=100),
        make_record("kz", 1, name="Kazakhstan", lon=50.0, lat=40.0, size=10.0, metric=50),
        make_record("cfd", 2, "ru", name="Central", lon=35.0, lat=52.0, size=5.0, metric=60),
        make_record("nwfd", 2, "ru", name="North-West", lon=30.0, lat=58.0, size=5.0, metric=40),
        make_record("msk", 3, "cfd", name="Moscow", lon=37.0, lat=55.0, size=1.0, metric=30),
        make_record("tver", 3, "cfd", name="Tver", lon=35.0, lat=56.0, size=1.0, metric=10),
    ]


@pytest.fixture()
def raw_rows():
    """Rows as the host query returns them, geometry dumped as Python dict strings."""
    return [
        {
            "code": 1,
            "shape": str(_payload("1", _square(37.0, 55.0))),
            "name": "Moscow",
            "tier": 1,
            "parent": None,
            "sales": 10,
            "note": "<b>capital</b>",
            "owner": "north",
        },
        {
            "code": 2,
            "shape": str(_payload("2", _square(39.0, 55.0))),
            "name": "Vladimir",
            "tier": 1,
            "parent": None,
            "sales": 20,
            "note": "",
            "owner": "south",
        },
        {
            "code": 3,
            "shape": str(_payload("3", _square(41.0, 55.0))),
            "name": "Nizhny Novgorod",
            "tier": 1,
            "parent": None,
            "sales": 30,
            "note": None,
            "owner": "east",
        },
    ]


@pytest.fixture()
def chart_config():
    return ChartConfig.from_mapping(
        {
            "columns": {
                "id": "code",
                "geojson": "shape",
                "region_name": "name",
                "message_html": {"label": "note"},
                "level": "tier",
                "parent_id": "parent",
            },
            "metric": [{"label": "sales"}],
            "cross_filter": {"enabled": True},
        }
    )


@pytest.fixture()
def ready_loader():
    return ProviderLoader(lambda done: done(True))


@pytest.fixture()
def failing_loader():
    return ProviderLoader(lambda done: done(False))
