import threading

import pytest

from pokerhost.registry import ClientRegistry, RegistryError


class FakeClient:
    def __init__(self, client_id: int) -> None:
        self.client_id = client_id


def open_registry(capacity: int = 8) -> ClientRegistry:
    registry: ClientRegistry[FakeClient] = ClientRegistry(capacity)
    registry.open()
    return registry


def test_ids_start_at_one_and_increase():
    registry = open_registry()
    first = registry.register(FakeClient)
    second = registry.register(FakeClient)
    assert (first.client_id, second.client_id) == (1, 2)
    registry.remove(first.client_id, first)
    third = registry.register(FakeClient)
    assert third.client_id == 3


def test_capacity_limit_enforced():
    registry = open_registry(capacity=2)
    registry.register(FakeClient)
    registry.register(FakeClient)
    with pytest.raises(RegistryError, match="Maximum clients"):
        registry.register(FakeClient)
    assert len(registry) == 2
    assert registry.rejected == 1


def test_closed_registry_refuses_clients():
    registry: ClientRegistry[FakeClient] = ClientRegistry(4)
    with pytest.raises(RegistryError, match="shutting down"):
        registry.register(FakeClient)
    registry.open()
    registry.register(FakeClient)
    drained = registry.close()
    assert [client.client_id for client in drained] == [1]
    assert len(registry) == 0
    with pytest.raises(RegistryError):
        registry.register(FakeClient)


def test_remove_is_idempotent_and_matches_identity():
    registry = open_registry()
    client = registry.register(FakeClient)
    assert registry.remove(client.client_id, FakeClient(client.client_id)) is False
    assert registry.remove(client.client_id, client) is True
    assert registry.remove(client.client_id, client) is False
    assert registry.snapshot() == []


def test_concurrent_registration_respects_capacity():
    registry = open_registry(capacity=8)
    barrier = threading.Barrier(32)
    accepted = []
    rejected = []

    def attempt() -> None:
        barrier.wait()
        try:
            accepted.append(registry.register(FakeClient))
        except RegistryError:
            rejected.append(1)

    threads = [threading.Thread(target=attempt) for _ in range(32)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(accepted) == 8
    assert len(rejected) == 24
    assert sorted(client.client_id for client in accepted) == list(range(1, 9))


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ClientRegistry(0)
