"""End-to-end tests of the publish/restart/mute/stop flows."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from whipclient import (
    AlreadyPublishingError,
    ClientConfig,
    IceServerConfig,
    MalformedResponseError,
    NotPublishingError,
    PeerConfiguration,
    ResourceNotReadyError,
    SignalingRejectedError,
    WHIPClient,
)
from whipclient.rtc.webrtc import ICECandidate

from conftest import ENDPOINT, FakePeerConnection, host_candidate, make_sdp

LINK = '<turn:example.com>; rel="ice-server"; username="u"; credential="p"'


def test_publish_creates_session(peer, server, http) -> None:
    server.reply(
        "POST",
        httpx.Response(
            201,
            headers={"Location": "/resource/123", "ETag": '"abc"', "Link": LINK},
            text=make_sdp("remote", "remotepwd"),
        ),
    )
    client = WHIPClient(
        http=http,
        on_offer=lambda sdp: sdp + "a=x-offer:1\r\n",
        on_answer=lambda sdp: sdp + "a=x-answer:1\r\n",
    )

    session = asyncio.run(client.publish(peer, ENDPOINT, "secret"))

    assert session is client.session
    assert session.resource_url == "https://whip.example.com/resource/123"
    assert session.etag == '"abc"'
    assert (session.local_ice_username, session.local_ice_password) == ("local0", "localpwd0")
    assert [s.model_dump(exclude_none=True) for s in peer.configuration.ice_servers] == [
        {"urls": "turn:example.com", "username": "u", "credential": "p"}
    ]

    (request,) = server.requests
    assert request.headers["authorization"] == "Bearer secret"
    assert request.content.decode().endswith("a=x-offer:1\r\n")
    assert peer.local_description.sdp.endswith("a=x-offer:1\r\n")
    assert peer.remote_description.type == "answer"
    assert peer.remote_description.sdp.endswith("a=x-answer:1\r\n")


def test_publish_keeps_caller_ice_servers(server, http) -> None:
    configured = PeerConfiguration(ice_servers=[IceServerConfig(urls="stun:mine.example.com")])
    peer = FakePeerConnection(configuration=configured)
    server.reply(
        "POST",
        httpx.Response(201, headers={"Location": "/r/1", "Link": LINK}, text=make_sdp("r", "p")),
    )

    asyncio.run(WHIPClient(http=http).publish(peer, ENDPOINT))

    assert peer.configurations == []
    assert peer.configuration.ice_servers[0].urls == "stun:mine.example.com"


def test_publish_twice_fails(peer, http) -> None:
    client = WHIPClient(http=http)

    async def scenario():
        await client.publish(peer, ENDPOINT)
        await client.publish(FakePeerConnection(), ENDPOINT)

    with pytest.raises(AlreadyPublishingError):
        asyncio.run(scenario())


def test_publish_rejected(peer, server, http) -> None:
    server.reply("POST", httpx.Response(403))

    with pytest.raises(SignalingRejectedError) as excinfo:
        asyncio.run(WHIPClient(http=http).publish(peer, ENDPOINT))
    assert excinfo.value.status == 403
    assert peer.local_description is None


def test_publish_requires_location(peer, server, http) -> None:
    server.reply("POST", httpx.Response(201, text=make_sdp("r", "p")))

    with pytest.raises(MalformedResponseError):
        asyncio.run(WHIPClient(http=http).publish(peer, ENDPOINT))


def test_candidates_after_publish_are_trickled(peer, server, http) -> None:
    client = WHIPClient(http=http)

    async def scenario():
        await client.publish(peer, ENDPOINT, "secret")
        peer.emit_candidate(ICECandidate(host_candidate(1), "0", 0))
        peer.emit_candidate(ICECandidate(host_candidate(2), "1", 1))
        peer.emit_candidate(None)
        await client.scheduler.wait_idle()

    asyncio.run(scenario())

    (request,) = server.requests_for("PATCH")
    assert str(request.url) == "https://whip.example.com/resource/123"
    assert request.headers["if-match"] == '"abc"'
    assert request.headers["authorization"] == "Bearer secret"
    body = request.content.decode()
    assert body.startswith("a=ice-ufrag:local0\r\na=ice-pwd:localpwd0\r\n")
    assert body.count("m=") == 2
    assert body.count("a=end-of-candidates") == 2


def test_restart_forces_wildcard_if_match_once(peer, server, http) -> None:
    server.reply(
        "PATCH",
        httpx.Response(
            200,
            headers={"ETag": '"def"'},
            text=make_sdp("remote2", "remotepwd2", (f"a={host_candidate(7, 45000)}",), kinds=("audio",)),
        ),
    )
    client = WHIPClient(http=http)

    async def scenario():
        await client.publish(peer, ENDPOINT)
        await client.restart()
        peer.emit_candidate(ICECandidate(host_candidate(3), "0", 0))
        await client.scheduler.wait_idle()

    asyncio.run(scenario())

    restart, trickle = server.requests_for("PATCH")
    assert restart.headers["if-match"] == "*"
    assert restart.content.decode() == "a=ice-ufrag:local1\r\na=ice-pwd:localpwd1\r\n"
    assert trickle.headers["if-match"] == '"def"'
    assert "a=ice-ufrag:local1" in trickle.content.decode()

    assert peer.restart_requests == 1
    assert client.session.etag == '"def"'
    assert client.session.restart_marker is None
    merged = peer.remote_description.sdp
    assert "a=ice-ufrag:remote2" in merged
    assert "a=ice-ufrag:remote\r\n" not in merged
    assert host_candidate(9, 40000) not in merged
    assert merged.count(host_candidate(7, 45000)) == 2


def test_restart_discards_pending_candidates(peer, server, http) -> None:
    client = WHIPClient(http=http)

    async def scenario():
        await client.publish(peer, ENDPOINT)
        peer.emit_candidate(ICECandidate(host_candidate(1), "0", 0))
        await client.restart()
        await client.scheduler.wait_idle()

    asyncio.run(scenario())

    (request,) = server.requests_for("PATCH")
    assert "m=" not in request.content.decode()


def test_restart_without_session(http) -> None:
    with pytest.raises(NotPublishingError):
        asyncio.run(WHIPClient(http=http).restart())


def test_mute_notifies_resource(peer, server, http) -> None:
    client = WHIPClient(http=http)

    async def scenario():
        await client.publish(peer, ENDPOINT)
        return await client.mute(True)

    assert asyncio.run(scenario()) is True
    request = server.requests[-1]
    assert request.method == "POST"
    assert str(request.url) == "https://whip.example.com/resource/123"
    assert json.loads(request.content) is True


def test_mute_failure_is_not_raised(peer, server, http, caplog) -> None:
    client = WHIPClient(http=http)

    async def scenario():
        await client.publish(peer, ENDPOINT)
        server.reply("POST", httpx.Response(500))
        return await client.mute(False)

    with caplog.at_level("WARNING"):
        assert asyncio.run(scenario()) is False
    assert "status 500" in caplog.text


def test_stop_deletes_resource(peer, server, http) -> None:
    client = WHIPClient(http=http)

    async def scenario():
        await client.publish(peer, ENDPOINT, "secret")
        await client.stop()
        await client.stop()

    asyncio.run(scenario())

    (request,) = server.requests_for("DELETE")
    assert str(request.url) == "https://whip.example.com/resource/123"
    assert request.headers["authorization"] == "Bearer secret"
    assert peer.closed is True
    assert client.session is None


def test_stop_before_resource_exists(peer, server, http) -> None:
    server.reply("POST", httpx.Response(500))
    client = WHIPClient(http=http)

    async def scenario():
        with pytest.raises(SignalingRejectedError):
            await client.publish(peer, ENDPOINT)
        with pytest.raises(ResourceNotReadyError):
            await client.stop()
        await client.stop()

    asyncio.run(scenario())

    assert peer.closed is True
    assert server.requests_for("DELETE") == []


def test_stop_closes_peer_even_if_delete_fails(peer, server, http) -> None:
    client = WHIPClient(http=http)

    def refuse(request: httpx.Request) -> None:
        if request.method == "DELETE":
            raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        await client.publish(peer, ENDPOINT)
        server.on_request = refuse
        await client.stop()

    with pytest.raises(httpx.ConnectError):
        asyncio.run(scenario())
    assert peer.closed is True
    assert client.session is None


def test_client_can_publish_again_after_stop(peer, server, http) -> None:
    client = WHIPClient(http=http)
    second = FakePeerConnection()

    async def scenario():
        await client.publish(peer, ENDPOINT)
        await client.stop()
        return await client.publish(second, ENDPOINT)

    session = asyncio.run(scenario())

    assert session.peer is second
    assert len(server.requests_for("DELETE")) == 1


def test_connection_state_hook(peer, http) -> None:
    states = []
    client = WHIPClient(http=http, on_connection_state_change=states.append)

    async def scenario():
        await client.publish(peer, ENDPOINT)
        peer.set_state("connected")
        await client.stop()

    asyncio.run(scenario())

    assert states == ["connected", "closed"]


def test_from_config_applies_headers(peer, server) -> None:
    config = ClientConfig(userAgent="probe/1.0", headers={"X-Room": "42"})

    async def scenario():
        http = httpx.AsyncClient(transport=httpx.MockTransport(server.handle))
        async with WHIPClient.from_config(config, http=http) as client:
            await client.publish(peer, ENDPOINT)

    asyncio.run(scenario())

    request = server.requests[0]
    assert request.headers["user-agent"] == "probe/1.0"
    assert request.headers["x-room"] == "42"


def test_from_config_supplies_endpoint_and_token(peer, server) -> None:
    config = ClientConfig(endpoint=ENDPOINT, token="from-profile")

    async def scenario():
        http = httpx.AsyncClient(transport=httpx.MockTransport(server.handle))
        async with WHIPClient.from_config(config, http=http) as client:
            return await client.publish(peer)

    session = asyncio.run(scenario())

    (request,) = server.requests
    assert str(request.url) == ENDPOINT
    assert request.headers["authorization"] == "Bearer from-profile"
    assert session.token == "from-profile"
    assert session.resource_url == "https://whip.example.com/resource/123"


def test_explicit_token_overrides_configured_one(peer, server, http) -> None:
    client = WHIPClient(http=http, endpoint=ENDPOINT, token="default")

    asyncio.run(client.publish(peer, token="override"))

    assert server.requests[0].headers["authorization"] == "Bearer override"


def test_publish_without_endpoint(peer, http) -> None:
    with pytest.raises(ValueError):
        asyncio.run(WHIPClient(http=http).publish(peer))


def test_restart_before_resource_exists(peer, server, http) -> None:
    server.reply("POST", httpx.Response(503))
    client = WHIPClient(http=http)

    async def scenario():
        with pytest.raises(SignalingRejectedError):
            await client.publish(peer, ENDPOINT)
        with pytest.raises(ResourceNotReadyError):
            await client.restart()

    asyncio.run(scenario())

    assert peer.restart_requests == 0
    assert client.session.restart_marker is None
    assert server.requests_for("PATCH") == []
