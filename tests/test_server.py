import base64
import json
import os
import socket
import threading
import time

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.sync.client import connect

import threecard.session as session_module
from pokerhost.server import ClientConnection, PokerServer
from threecard.models import PlayerAction, ServerConfig, SessionState, TableConfig
from threecard.protocol import (
    CardsDealt,
    Disconnect,
    GameResult,
    InitialBet,
    PlayAgain,
    PlayerActionMessage,
    decode,
    encode,
)

from .helpers import FakeWebSocket, wait_for


@pytest.fixture
def server():
    poker_server = PokerServer(ServerConfig(host="127.0.0.1", port=0, shutdown_timeout=2.0))
    poker_server.start()
    yield poker_server
    poker_server.stop()


def url(server: PokerServer) -> str:
    return f"ws://127.0.0.1:{server.port}"


def test_full_hand_over_the_wire(server):
    with connect(url(server)) as ws:
        ws.send(encode(InitialBet(ante_bet=10, pair_plus_bet=5)))
        dealt = decode(ws.recv(timeout=5))
        assert isinstance(dealt, CardsDealt)
        assert dealt.client_id == 1
        assert dealt.dealer_cards_hidden is True

        ws.send(
            encode(
                PlayerActionMessage(
                    player_action=PlayerAction.FOLD,
                    ante_bet=10,
                    pair_plus_bet=5,
                    player_cards=dealt.player_cards,
                    dealer_cards=dealt.dealer_cards,
                )
            )
        )
        result = decode(ws.recv(timeout=5))
        assert isinstance(result, GameResult)
        assert result.delta_winnings == -15
        assert result.total_winnings == -15
        assert result.dealer_cards == dealt.dealer_cards

        ws.send(encode(PlayAgain()))
        ws.send(encode(InitialBet(ante_bet=5)))
        second = decode(ws.recv(timeout=5))
        assert isinstance(second, CardsDealt)
        assert second.hand_number == 2


def test_invalid_bet_gets_no_reply_but_session_survives(server):
    with connect(url(server)) as ws:
        ws.send(encode(InitialBet(ante_bet=3)))
        with pytest.raises(TimeoutError):
            ws.recv(timeout=0.3)
        ws.send(json.dumps({"type": "CHAT", "v": 1}))
        ws.send(encode(InitialBet(ante_bet=10)))
        assert isinstance(decode(ws.recv(timeout=5)), CardsDealt)
        assert server.client_count == 1


def test_malformed_frame_disconnects_only_that_client(server):
    with connect(url(server)) as good, connect(url(server)) as bad:
        assert wait_for(lambda: server.client_count == 2)
        bad.send("definitely not json")
        with pytest.raises(ConnectionClosed):
            bad.recv(timeout=5)
        assert wait_for(lambda: server.client_count == 1)

        good.send(encode(InitialBet(ante_bet=10)))
        assert isinstance(decode(good.recv(timeout=5)), CardsDealt)


def test_disconnect_message_frees_a_slot(server):
    ws = connect(url(server))
    assert wait_for(lambda: server.client_count == 1)
    ws.send(encode(Disconnect()))
    with pytest.raises(ConnectionClosed):
        ws.recv(timeout=5)
    assert wait_for(lambda: server.client_count == 0)
    ws.close()


def test_ninth_client_is_turned_away(server):
    clients = [connect(url(server)) for _ in range(9)]
    try:
        assert wait_for(lambda: server.client_count == 8 and server.rejected_count == 1)
        closed = 0
        for ws in clients:
            try:
                ws.recv(timeout=0.5)
            except ConnectionClosed:
                closed += 1
            except TimeoutError:
                pass
        assert closed == 1
        assert server.client_count == 8
    finally:
        for ws in clients:
            ws.close()
    assert wait_for(lambda: server.client_count == 0)


def test_client_ids_keep_increasing(server):
    ids = []
    for _ in range(3):
        with connect(url(server)) as ws:
            ws.send(encode(InitialBet(ante_bet=10)))
            dealt = decode(ws.recv(timeout=5))
            ids.append(dealt.client_id)  # type: ignore[union-attr]
        assert wait_for(lambda: server.client_count == 0)
    assert ids == [1, 2, 3]


def test_stop_disconnects_clients_and_is_idempotent(server):
    first = connect(url(server))
    second = connect(url(server))
    assert wait_for(lambda: server.client_count == 2)

    server.stop()
    assert not server.running
    assert server.client_count == 0
    for ws in (first, second):
        with pytest.raises(ConnectionClosed):
            ws.recv(timeout=5)
    server.stop()
    assert not server.running


def test_start_is_idempotent(server):
    port = server.port
    server.start()
    assert server.running
    assert server.port == port


def test_server_can_restart_after_stop():
    poker_server = PokerServer(ServerConfig(host="127.0.0.1", port=0))
    with poker_server:
        assert poker_server.running
    assert not poker_server.running
    with poker_server:
        with connect(url(poker_server)) as ws:
            ws.send(encode(InitialBet(ante_bet=10)))
            assert isinstance(decode(ws.recv(timeout=5)), CardsDealt)


def open_silent_client(port: int) -> socket.socket:
    """Complete the opening handshake, then never read or answer again."""
    sock = socket.create_connection(("127.0.0.1", port), timeout=5)
    key = base64.b64encode(os.urandom(16)).decode()
    sock.sendall(
        (
            "GET / HTTP/1.1\r\n"
            f"Host: 127.0.0.1:{port}\r\n"
            "Upgrade: websocket\r\n"
            "Connection: Upgrade\r\n"
            f"Sec-WebSocket-Key: {key}\r\n"
            "Sec-WebSocket-Version: 13\r\n"
            "\r\n"
        ).encode()
    )
    response = b""
    while b"\r\n\r\n" not in response:
        chunk = sock.recv(1024)
        if not chunk:
            break
        response += chunk
    assert response.startswith(b"HTTP/1.1 101"), response
    return sock


def test_stop_is_bounded_when_clients_never_answer_close():
    config = ServerConfig(host="127.0.0.1", port=0, shutdown_timeout=2.0, close_timeout=0.5)
    poker_server = PokerServer(config)
    poker_server.start()
    silent = [open_silent_client(poker_server.port) for _ in range(3)]
    try:
        assert wait_for(lambda: poker_server.client_count == 3)
        started = time.monotonic()
        poker_server.stop()
        elapsed = time.monotonic() - started
    finally:
        for sock in silent:
            sock.close()
    assert not poker_server.running
    assert poker_server.client_count == 0
    assert elapsed < config.shutdown_timeout + 1.0


def test_disconnect_from_another_thread_leaves_the_session_to_its_reader():
    released = []
    client = ClientConnection(1, FakeWebSocket(), TableConfig(), released.append)

    closer = threading.Thread(target=client.disconnect, args=("Server shutting down",))
    closer.start()
    closer.join(5)

    assert client.websocket.closed
    assert released == [client]
    assert not client.session.closed
    client.run()
    assert client.session.closed
    assert released == [client]


def test_stop_landing_mid_settlement_does_not_corrupt_the_hand(monkeypatch):
    released = []
    websocket = FakeWebSocket(
        [
            encode(InitialBet(ante_bet=10)),
            encode(PlayerActionMessage(player_action=PlayerAction.PLAY, ante_bet=10, play_bet=10)),
            encode(InitialBet(ante_bet=10)),
        ]
    )
    client = ClientConnection(1, websocket, TableConfig(), released.append)
    qualifies = session_module.dealer_qualifies

    def disconnect_then_qualify(dealer_hand):
        client.disconnect("Server shutting down")
        return qualifies(dealer_hand)

    monkeypatch.setattr(session_module, "dealer_qualifies", disconnect_then_qualify)
    client.run()

    assert released == [client]
    assert client.session.state == SessionState.DISCONNECTED
    assert client.session.hand_number == 1
    assert client.session.player_hand == []
    # CARDS_DEALT went out; the GAME_RESULT send hit the closed socket.
    assert len(websocket.sent) == 1
    assert isinstance(decode(websocket.sent[0]), CardsDealt)
