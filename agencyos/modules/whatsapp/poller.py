# agencyos/modules/whatsapp/poller.py

import asyncio
import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from loguru import logger

from agencyos.core.config import settings


@dataclass
class PairingSnapshot:
    """One observation of an instance while it is being paired."""
    state: str
    qr_code: Optional[str] = None


@dataclass
class PairingResult:
    connected: bool
    state: str
    qr_code: Optional[str] = None
    attempts: int = 0


StateCheck = Callable[[], Awaitable[PairingSnapshot]]
QrCallback = Callable[[str], Optional[Awaitable[None]]]


class QrPairingPoller:
    """Polls an instance's connection state until it reports `open`.

    There is at most one running poll per key (instance id). Starting a new
    poll for the same key cancels the previous one.
    """

    def __init__(self, interval: float = 3.0, timeout: Optional[float] = 120.0):
        self.interval = interval
        self.timeout = timeout
        self._tasks: Dict[str, asyncio.Task] = {}

    def start(self, key: str, check: StateCheck, on_qr: Optional[QrCallback] = None) -> asyncio.Task:
        self.stop(key)
        task = asyncio.create_task(self._run(key, check, on_qr), name=f"qr-poll-{key}")
        self._tasks[key] = task
        task.add_done_callback(lambda t: self._forget(key, t))
        logger.bind(service="QrPairingPoller", key=key).info("QR pairing poll started.")
        return task

    async def wait(self, key: str) -> Optional[PairingResult]:
        """Awaits the running poll for `key`. None when nothing runs or it was cancelled."""
        task = self._tasks.get(key)
        if task is None:
            return None
        try:
            return await task
        except asyncio.CancelledError:
            if task.cancelled():
                return None
            raise

    def stop(self, key: str) -> bool:
        task = self._tasks.pop(key, None)
        if task is None or task.done():
            return False
        task.cancel()
        logger.bind(service="QrPairingPoller", key=key).info("QR pairing poll stopped.")
        return True

    def is_polling(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()

    async def close(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]

    async def _run(self, key: str, check: StateCheck, on_qr: Optional[QrCallback]) -> PairingResult:
        log = logger.bind(service="QrPairingPoller", key=key)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout if self.timeout else None
        last_qr: Optional[str] = None
        last_state = "connecting"
        attempts = 0

        while True:
            attempts += 1
            try:
                snapshot = await check()
            except Exception as e:
                log.warning(f"Connection state check failed (attempt {attempts}): {e}")
            else:
                last_state = snapshot.state
                if snapshot.qr_code and snapshot.qr_code != last_qr:
                    last_qr = snapshot.qr_code
                    if on_qr is not None:
                        try:
                            outcome = on_qr(last_qr)
                            if inspect.isawaitable(outcome):
                                await outcome
                        except Exception as e:
                            log.warning(f"QR callback failed: {e}")
                if snapshot.state == "open":
                    log.success(f"Instance connected after {attempts} check(s).")
                    return PairingResult(connected=True, state="open", qr_code=last_qr, attempts=attempts)

            if deadline is not None and loop.time() >= deadline:
                log.warning(f"QR pairing timed out after {attempts} check(s); last state '{last_state}'.")
                return PairingResult(connected=False, state=last_state, qr_code=last_qr, attempts=attempts)
            await asyncio.sleep(self.interval)


qr_poller = QrPairingPoller(
    interval=settings.EVOLUTION_POLL_INTERVAL_SECONDS,
    timeout=settings.EVOLUTION_POLL_TIMEOUT_SECONDS,
)
