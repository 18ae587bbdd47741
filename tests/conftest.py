from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from whipclient.rtc.webrtc import ICECandidate, SessionDescription
from whipclient.signaling.schemas import PeerConfiguration

ENDPOINT = "https://whip.example.com/whip/endpoint"


def make_sdp(ufrag: str, pwd: str, candidates: tuple = (), kinds: tuple = ("audio", "video")) -> str:
    lines = [
        "v=0",
        "o=- 4611731400430051336 2 IN IP4 127.0.0.1",
        "s=-",
        "t=0 0",
        "a=group:BUNDLE " + " ".join(str(i) for i in range(len(kinds))),
    ]
    for index, kind in enumerate(kinds):
        lines.append(f"m={kind} 9 UDP/TLS/RTP/SAVPF 96")
        lines.extend(candidates)
        lines.append("c=IN IP4 0.0.0.0")
        lines.append(f"a=ice-ufrag:{ufrag}")
        lines.append(f"a=ice-pwd:{pwd}")
        lines.append(f"a=mid:{index}")
    return "\r\n".join(lines) + "\r\n"


def host_candidate(foundation: int, port: int = 50000) -> str:
    return f"candidate:{foundation} 1 udp 2122260223 192.0.2.10 {port} typ host"


class FakeTransceiver:
    def __init__(self, mid: Optional[str], kind: str) -> None:
        self.mid = mid
        self.kind = kind


class FakePeerConnection:
    def __init__(self, configuration: Optional[PeerConfiguration] = None) -> None:
        self.transceivers = [FakeTransceiver("0", "audio"), FakeTransceiver("1", "video")]
        self.configuration = configuration or PeerConfiguration()
        self.listeners: Dict[str, List[Callable]] = defaultdict(list)
        self.connection_state = "new"
        self.local_description: Optional[SessionDescription] = None
        self.remote_description: Optional[SessionDescription] = None
        self.remote_history: List[SessionDescription] = []
        self.configurations: List[PeerConfiguration] = []
        self.generation = 0
        self.restart_requests = 0
        self.closed = False

    async def create_offer(self, *, ice_restart: bool = False) -> SessionDescription:
        if ice_restart:
            self.generation += 1
        return SessionDescription(
            type="offer", sdp=make_sdp(f"local{self.generation}", f"localpwd{self.generation}")
        )

    async def set_local_description(self, description: SessionDescription) -> None:
        self.local_description = description

    async def set_remote_description(self, description: SessionDescription) -> None:
        self.remote_description = description
        self.remote_history.append(description)

    def get_transceivers(self):
        return list(self.transceivers)

    def restart_ice(self) -> None:
        self.restart_requests += 1

    def get_configuration(self) -> PeerConfiguration:
        return self.configuration

    def set_configuration(self, configuration: PeerConfiguration) -> None:
        self.configuration = configuration
        self.configurations.append(configuration)

    def on(self, event: str, callback: Callable) -> None:
        self.listeners[event].append(callback)

    async def close(self) -> None:
        self.closed = True
        self.set_state("closed")

    # ----------------------------------------------------------- test helpers

    def emit_candidate(self, candidate: Optional[ICECandidate]) -> None:
        for callback in self.listeners["icecandidate"]:
            callback(candidate)

    def set_state(self, state: str) -> None:
        self.connection_state = state
        for callback in self.listeners["connectionstatechange"]:
            callback(state)


class FakeWhipServer:
    """Records requests and answers them from per-method reply queues."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.replies: Dict[str, List[httpx.Response]] = defaultdict(list)
        self.on_request: Optional[Callable[[httpx.Request], None]] = None

    def reply(self, method: str, response: httpx.Response) -> None:
        self.replies[method].append(response)

    def requests_for(self, method: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.method == method]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.on_request is not None:
            self.on_request(request)
        queued = self.replies[request.method]
        if queued:
            return queued.pop(0)
        if request.method == "POST" and request.headers.get("content-type") == "application/sdp":
            return httpx.Response(
                201,
                headers={"Location": "/resource/123", "ETag": '"abc"'},
                text=make_sdp("remote", "remotepwd", (f"a={host_candidate(9, 40000)}",)),
            )
        return httpx.Response(204)


@pytest.fixture
def peer() -> FakePeerConnection:
    return FakePeerConnection()


@pytest.fixture
def server() -> FakeWhipServer:
    return FakeWhipServer()


@pytest.fixture
def http(server: FakeWhipServer) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(server.handle))
