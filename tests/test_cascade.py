"""Tests for label-driven cascade deletion."""

import pytest

from nifi_operator.cascade import delete_all, delete_named
from nifi_operator.errors import UpstreamApiError

from conftest import NAMESPACE, OWNER_LABELS, SELECTOR, FakeKind


@pytest.fixture(name="services")
def services_fixture() -> FakeKind:
    kind = FakeKind("Service")
    for name in ("a", "b", "c"):
        kind.add(name, labels=OWNER_LABELS)
    kind.add("foreign", labels={"app.kubernetes.io/managed-by": "someone-else", "release": "nifi"})
    kind.add("elsewhere", namespace="other", labels=OWNER_LABELS)
    return kind


async def test_deletes_only_matching(services: FakeKind) -> None:
    await delete_all(services, NAMESPACE, SELECTOR)

    assert services.count("delete") == 3
    assert set(services.objects) == {(NAMESPACE, "foreign"), ("other", "elsewhere")}


async def test_failure_does_not_stop_siblings(services: FakeKind) -> None:
    services.fail("delete", "a")
    services.fail("delete", "c", status=409)

    with pytest.raises(UpstreamApiError) as exc_info:
        await delete_all(services, NAMESPACE, SELECTOR)

    assert exc_info.value.name == "a"
    assert services.count("delete") == 3
    assert (NAMESPACE, "b") not in services.objects


async def test_nothing_to_delete() -> None:
    kind = FakeKind("Ingress")

    await delete_all(kind, NAMESPACE, SELECTOR)

    assert kind.count("list") == 1
    assert kind.count("delete") == 0


async def test_list_failure_is_raised(services: FakeKind) -> None:
    services.fail("list", SELECTOR)

    with pytest.raises(UpstreamApiError):
        await delete_all(services, NAMESPACE, SELECTOR)
    assert services.count("delete") == 0


async def test_delete_named_returns_outcomes() -> None:
    kind = FakeKind("StatefulSet")
    kind.add("demo")
    kind.fail("delete", "demo-zookeeper")

    results = await delete_named(kind, ["demo", "demo-zookeeper"], NAMESPACE)

    assert results[0] is None
    assert isinstance(results[1], UpstreamApiError)
    assert kind.objects == {}
