"""Shared fixtures: an in-memory stand-in for the upstream websocket."""

import asyncio
import json
from typing import Any, Callable, Union

import pytest

_CLOSE = object()


class FakeConnection:
    """Websocket double supporting send, close and async iteration."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self.close_code = None
        self.close_reason = None
        self._frames: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionError("send on closed connection")
        self.sent.append(data)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.close_code is None:
            self.close_code = 1000
            self.close_reason = ""
        self._frames.put_nowait(_CLOSE)

    def feed(self, payload: Union[str, bytes, dict[str, Any]]) -> None:
        """Queue an inbound frame (dicts are JSON encoded)."""
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        self._frames.put_nowait(payload)

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the upstream closing the connection."""
        self.close_code = code
        self.close_reason = reason
        self._frames.put_nowait(_CLOSE)

    @property
    def auth_message(self) -> dict[str, Any]:
        return json.loads(self.sent[0])

    def __aiter__(self) -> "FakeConnection":
        return self

    async def __anext__(self) -> Any:
        item = await self._frames.get()
        if item is _CLOSE:
            self.closed = True
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Connector double recording each connection attempt."""

    def __init__(self) -> None:
        self.calls = 0
        self.urls: list[str] = []
        self.connections: list[FakeConnection] = []
        self.fail_next = 0
        self.always_fail = False

    async def __call__(self, url: str, **kwargs: Any) -> FakeConnection:
        self.calls += 1
        self.urls.append(url)
        if self.always_fail or self.fail_next > 0:
            if self.fail_next > 0:
                self.fail_next -= 1
            raise ConnectionRefusedError("connection refused")
        connection = FakeConnection()
        self.connections.append(connection)
        return connection

    @property
    def latest(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def wait_until() -> Callable:
    """Poll a condition on the running loop until it holds or times out."""

    async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait_until


def position_frame(
    mmsi: int = 244660000,
    latitude: float = 51.95,
    longitude: float = 4.05,
    **fields: Any,
) -> dict[str, Any]:
    """Build an AISStream PositionReport frame."""
    report = {
        "UserID": mmsi,
        "Latitude": latitude,
        "Longitude": longitude,
        "Sog": 12.3,
        "Cog": 181.5,
        "TrueHeading": 180,
        "NavigationalStatus": 0,
        "RateOfTurn": -2,
    }
    report.update(fields)
    return {
        "MessageType": "PositionReport",
        "Message": {"PositionReport": report},
        "MetaData": {
            "MMSI": mmsi,
            "ShipName": "NORDIC STAR   ",
            "time_utc": "2024-03-01 12:30:45.123456789 +0000 UTC",
        },
    }


def static_frame(mmsi: int = 244660000, **fields: Any) -> dict[str, Any]:
    """Build an AISStream ShipStaticData frame."""
    data = {
        "UserID": mmsi,
        "Name": "NORDIC STAR@@@@",
        "Type": 70,
        "ImoNumber": 9321483,
        "CallSign": "PDAB ",
        "Dimension": {"A": 150, "B": 30, "C": 12, "D": 16},
        "Destination": "ROTTERDAM@@",
        "Eta": {"Month": 6, "Day": 15, "Hour": 8, "Minute": 30},
        "MaximumStaticDraught": 9.4,
    }
    data.update(fields)
    return {
        "MessageType": "ShipStaticData",
        "Message": {"ShipStaticData": data},
        "MetaData": {"MMSI": mmsi, "time_utc": "2024-03-01 12:31:00 +0000 UTC"},
    }


@pytest.fixture
def make_position_frame() -> Callable[..., dict[str, Any]]:
    return position_frame


@pytest.fixture
def make_static_frame() -> Callable[..., dict[str, Any]]:
    return static_frame
