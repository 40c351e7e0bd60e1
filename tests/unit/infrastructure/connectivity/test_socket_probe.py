import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from swiffcore.domain.models.network import ConnectionKind, NetworkStatus
from swiffcore.infrastructure.connectivity.socket_probe import (
    SocketConnectivityProbe,
    connection_kind_for_interface,
    default_route_interface,
)

ROUTES = (
    "Iface\tDestination\tGateway \tFlags\tRefCnt\tUse\tMetric\tMask\n"
    "docker0\t000011AC\t00000000\t0001\t0\t0\t0\t0000FFFF\n"
    "wlp2s0\t00000000\t0101A8C0\t0003\t0\t0\t600\t00000000\n"
)


@pytest.fixture
def route_table(tmp_path):
    path = tmp_path / "route"
    path.write_text(ROUTES)
    return path


def _fake_connection():
    writer = MagicMock()
    writer.wait_closed = AsyncMock()
    return MagicMock(), writer


def test_default_route_interface(route_table, tmp_path):
    assert default_route_interface(route_table) == "wlp2s0"
    assert default_route_interface(tmp_path / "absent") is None


@pytest.mark.parametrize("interface, kind", [
    ("wlan0", ConnectionKind.WIFI),
    ("eth0", ConnectionKind.ETHERNET),
    ("enp3s0", ConnectionKind.ETHERNET),
    ("wwan0", ConnectionKind.CELLULAR),
    ("rmnet_data0", ConnectionKind.CELLULAR),
    ("tun0", ConnectionKind.UNKNOWN),
    (None, ConnectionKind.UNKNOWN),
])
def test_connection_kind_for_interface(interface, kind):
    assert connection_kind_for_interface(interface) is kind


def test_initial_state_is_unknown():
    probe = SocketConnectivityProbe()
    assert probe.current_status() is NetworkStatus.UNKNOWN
    assert probe.current_connection_kind() is ConnectionKind.UNKNOWN


def test_refresh_connected_on_first_reachable_host(mocker, route_table):
    open_connection = mocker.patch(
        "swiffcore.infrastructure.connectivity.socket_probe.asyncio.open_connection",
        side_effect=[OSError("unreachable"), _fake_connection()],
    )
    probe = SocketConnectivityProbe(hosts=["down.example", "up.example", "unused.example"], route_table=route_table)

    status = asyncio.run(probe.refresh())

    assert status is NetworkStatus.CONNECTED
    assert probe.current_connection_kind() is ConnectionKind.WIFI
    assert [c.args[0] for c in open_connection.call_args_list] == ["down.example", "up.example"]


def test_refresh_disconnected_when_no_host_answers(mocker, route_table):
    mocker.patch(
        "swiffcore.infrastructure.connectivity.socket_probe.asyncio.open_connection",
        side_effect=OSError("unreachable"),
    )
    probe = SocketConnectivityProbe(hosts=["a.example", "b.example"], route_table=route_table)

    assert asyncio.run(probe.refresh()) is NetworkStatus.DISCONNECTED
    assert probe.current_connection_kind() is ConnectionKind.UNKNOWN


def test_can_reach_host_times_out(mocker):
    async def hang(*args, **kwargs):
        await asyncio.sleep(10)

    mocker.patch("swiffcore.infrastructure.connectivity.socket_probe.asyncio.open_connection", side_effect=hang)
    probe = SocketConnectivityProbe(timeout=0.05)

    assert asyncio.run(probe.can_reach_host("slow.example")) is False
