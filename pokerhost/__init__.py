"""Poker host package: serves Three Card Poker sessions over WebSockets."""

from .registry import ClientRegistry, RegistryError
from .server import ClientConnection, PokerServer

__all__ = ["ClientConnection", "ClientRegistry", "PokerServer", "RegistryError"]
