"""Integration tests for the controller WebSocket endpoint."""

import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from app import create_app
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect
from storage.controller import expressions


@pytest.fixture()
def client(registry):
    with TestClient(create_app(registry=registry)) as client:
        yield client


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


class TestBinding:
    def test_unknown_system_is_closed_with_4001(self, client):
        with client.websocket_connect("/") as ws:
            ws.send_text("nowhere")
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_text()
        assert exc.value.code == 4001

    def test_second_controller_is_closed_with_4002(self, client, connected):
        with client.websocket_connect("/") as ws:
            ws.send_text("main")
            with pytest.raises(WebSocketDisconnect) as exc:
                ws.receive_text()
        assert exc.value.code == 4002

    def test_bind_and_disconnect(self, client, handle):
        with client.websocket_connect("/") as ws:
            ws.send_text("main")
            _wait_for(lambda: handle.connected)
        _wait_for(lambda: not handle.connected)
        assert handle.channel is None

    def test_system_can_be_rebound_after_disconnect(self, client, handle):
        for _ in range(2):
            with client.websocket_connect("/") as ws:
                ws.send_text("main")
                _wait_for(lambda: handle.connected)
            _wait_for(lambda: not handle.connected)


class TestCommands:
    def test_register_storage_through_the_socket(self, client, handle):
        with client.websocket_connect("/") as ws:
            ws.send_text("main")
            _wait_for(lambda: handle.connected)

            with ThreadPoolExecutor(max_workers=1) as pool:
                pending = pool.submit(client.post, "/systems/main/storage", json={"id": "chest_0"})

                assert ws.receive_text() == expressions.is_present("chest_0")
                ws.send_text("true")
                assert ws.receive_text() == expressions.size("chest_0")
                ws.send_text("2")
                assert ws.receive_text() == expressions.item_detail("chest_0", 1)
                ws.send_text("nil")
                assert ws.receive_text() == expressions.item_detail("chest_0", 2)
                ws.send_text(
                    '{\n  count = 5,\n  displayName = "Oak Log",\n  maxCount = 64,\n  name = "minecraft:oak_log",\n}'
                )

                response = pending.result(timeout=5)

        assert response.status_code == 201
        assert response.json() == {"id": "chest_0", "slots": 2, "occupied": 1}
        assert handle.system.storage[0].items[1].item.item_id == "minecraft:oak_log"

    def test_disconnect_fails_the_running_request(self, client, handle):
        with ThreadPoolExecutor(max_workers=1) as pool:
            with client.websocket_connect("/") as ws:
                ws.send_text("main")
                _wait_for(lambda: handle.connected)

                pending = pool.submit(client.post, "/systems/main/storage", json={"id": "chest_0"})
                assert ws.receive_text() == expressions.is_present("chest_0")

            response = pending.result(timeout=5)

        assert response.status_code == 502
        assert response.json()["error"] == "protocol_error"
        assert handle.system.storage == []
