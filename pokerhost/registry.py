from __future__ import annotations

import threading
from typing import Callable, Dict, Generic, List, TypeVar

T = TypeVar("T")


class RegistryError(RuntimeError):
    pass


class ClientRegistry(Generic[T]):
    """Active clients keyed by id. Every read and write goes through ``lock``."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.lock = threading.Lock()
        self._clients: Dict[int, T] = {}
        self._next_id = 1
        self._accepting = False
        self.rejected = 0

    def open(self) -> None:
        with self.lock:
            self._accepting = True

    def close(self) -> List[T]:
        """Stop accepting and hand back every registered client."""
        with self.lock:
            self._accepting = False
            clients = list(self._clients.values())
            self._clients.clear()
        return clients

    def register(self, factory: Callable[[int], T]) -> T:
        with self.lock:
            if not self._accepting:
                self.rejected += 1
                raise RegistryError("Server is shutting down")
            if len(self._clients) >= self.capacity:
                self.rejected += 1
                raise RegistryError(f"Maximum clients ({self.capacity}) reached")
            client_id = self._next_id
            self._next_id += 1
            client = factory(client_id)
            self._clients[client_id] = client
            return client

    def remove(self, client_id: int, client: T) -> bool:
        with self.lock:
            if self._clients.get(client_id) is not client:
                return False
            del self._clients[client_id]
            return True

    def snapshot(self) -> List[T]:
        with self.lock:
            return list(self._clients.values())

    def __len__(self) -> int:
        with self.lock:
            return len(self._clients)
