"""Tests for the source registry."""

import pytest

from jobharvest.errors import ConfigurationError
from jobharvest.models import PaginationKind, ParserKind, SourceDescriptor, SourceType
from jobharvest.sources import JOB_SOURCES, SourceRegistry, priority_bands


@pytest.fixture
def registry():
    return SourceRegistry()


def test_builtin_sources_are_valid(registry):
    assert len(registry) == len(JOB_SOURCES)
    assert {s.name for s in registry} >= {"WeWorkRemotely", "RemoteOK", "LinkedIn", "Dribbble"}


def test_case_insensitive_lookup(registry):
    assert registry.get("linkedin").name == "LinkedIn"
    assert registry.get("Monster") is None


def test_resolve_orders_by_priority(registry):
    priorities = [s.priority for s in registry.resolve("ALL")]
    assert priorities == sorted(priorities)

    assert [s.name for s in registry.resolve("remoteok")] == ["RemoteOK"]
    assert registry.resolve("Monster") == []


def test_priority_bands(registry):
    bands = priority_bands(list(registry))

    assert [band[0].priority for band in bands] == [1, 2, 3, 4]
    assert {s.name for s in bands[0]} == {"WeWorkRemotely", "RemoteOK"}


def test_per_source_behavior_is_declared(registry):
    assert registry.get("LinkedIn").pagination.kind == PaginationKind.OFFSET
    assert registry.get("Hacker News Who's Hiring").parser == ParserKind.FORUM
    assert dict(registry.get("Dribbble").query_params) == {"per_page": "100"}


def test_describe(registry):
    assert registry.describe()[0] == {"name": "WeWorkRemotely", "url": "https://weworkremotely.com"}


@pytest.mark.parametrize(
    "source",
    [
        SourceDescriptor(name="NoFeed", url="https://x.example", type=SourceType.RSS),
        SourceDescriptor(name="NoSelector", url="https://y.example", type=SourceType.HTML),
    ],
)
def test_invalid_descriptor_rejected(source):
    with pytest.raises(ConfigurationError):
        SourceRegistry([source])
