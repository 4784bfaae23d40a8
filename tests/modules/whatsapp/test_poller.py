# tests/modules/whatsapp/test_poller.py
import asyncio

import pytest

from agencyos.modules.whatsapp.poller import PairingSnapshot, QrPairingPoller

pytestmark = pytest.mark.asyncio


def _scripted(*snapshots: PairingSnapshot):
    remaining = list(snapshots)

    async def check() -> PairingSnapshot:
        if len(remaining) > 1:
            return remaining.pop(0)
        return remaining[0]

    return check


async def test_poll_stops_when_instance_opens():
    poller = QrPairingPoller(interval=0.01, timeout=5)
    seen = []

    poller.start("inst-1", _scripted(
        PairingSnapshot("qr", "QR-1"),
        PairingSnapshot("qr", "QR-1"),
        PairingSnapshot("qr", "QR-2"),
        PairingSnapshot("open"),
    ), on_qr=seen.append)
    result = await poller.wait("inst-1")

    assert result.connected
    assert result.attempts == 4
    assert seen == ["QR-1", "QR-2"]
    assert not poller.is_polling("inst-1")


async def test_async_qr_callback_is_awaited():
    poller = QrPairingPoller(interval=0.01, timeout=5)
    seen = []

    async def on_qr(qr: str) -> None:
        seen.append(qr)

    poller.start("inst-1", _scripted(PairingSnapshot("qr", "QR-1"), PairingSnapshot("open")), on_qr=on_qr)
    await poller.wait("inst-1")

    assert seen == ["QR-1"]


async def test_poll_times_out():
    poller = QrPairingPoller(interval=0.01, timeout=0.05)

    poller.start("inst-1", _scripted(PairingSnapshot("connecting")))
    result = await poller.wait("inst-1")

    assert not result.connected
    assert result.state == "connecting"
    assert result.attempts >= 2


async def test_failed_checks_keep_polling():
    poller = QrPairingPoller(interval=0.01, timeout=5)
    calls = 0

    async def check() -> PairingSnapshot:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise ConnectionError("evolution unreachable")
        return PairingSnapshot("open")

    poller.start("inst-1", check)
    result = await poller.wait("inst-1")

    assert result.connected
    assert result.attempts == 3


async def test_restart_replaces_running_poll():
    poller = QrPairingPoller(interval=0.01, timeout=5)

    first = poller.start("inst-1", _scripted(PairingSnapshot("connecting")))
    poller.start("inst-1", _scripted(PairingSnapshot("open")))
    result = await poller.wait("inst-1")

    assert result.connected
    await asyncio.sleep(0)
    assert first.cancelled()


async def test_stop_and_close():
    poller = QrPairingPoller(interval=0.01, timeout=None)

    poller.start("inst-1", _scripted(PairingSnapshot("connecting")))
    poller.start("inst-2", _scripted(PairingSnapshot("connecting")))

    assert poller.stop("inst-1") is True
    assert poller.stop("inst-1") is False
    assert await poller.wait("inst-1") is None

    await poller.close()
    assert not poller.is_polling("inst-2")
