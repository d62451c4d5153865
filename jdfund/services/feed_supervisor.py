from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Any, Awaitable, Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot
from websockets.exceptions import ConnectionClosed

from jdfund.core.errors import TransportError
from jdfund.core.logger import INFO_EVENT_LEVEL, record
from jdfund.core.models import FEED_TOPIC, ConnectionState
from jdfund.services.insecure_tls import connect_insecure_feed


class ConnectionSupervisor(QObject):
    """Keeps one feed subscription alive until stopped.

    Failures never escape: every disconnect is logged and followed by a fixed
    delay and a fresh attempt, with no retry limit. ``stop()`` may be called
    from any thread; it cancels a handshake or read in progress and cuts the
    backoff delay short.
    """

    status = Signal(str)
    finished = Signal()

    def __init__(
        self,
        url: str,
        subscribe_message: str,
        broadcaster: Any,
        reconnect_delay_s: float = 3.0,
        connect: Optional[Callable[[str], Any]] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        recv_poll_s: float = 1.0,
        reconnect_log_dedup_s: float = 60.0,
    ) -> None:
        super().__init__()
        self._url = url
        self._subscribe_message = subscribe_message
        self._broadcaster = broadcaster
        self._reconnect_delay_s = reconnect_delay_s
        self._connect = connect or connect_insecure_feed
        self._sleep = sleep or asyncio.sleep
        self._recv_poll_s = recv_poll_s
        self._stop_event = threading.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wake: Optional[asyncio.Event] = None
        self._session: Optional[asyncio.Future] = None
        self._state = ConnectionState.DISCONNECTED
        self._reconnect_log_dedup_s = reconnect_log_dedup_s
        # keyed by error kind, so the map stays as small as the set of exception types
        self._reconnect_log_ts: dict[str, float] = {}
        self._logger = logging.getLogger("jdfund")
        self.backoff_count = 0
        self.frames_received = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @Slot()
    def run(self) -> None:
        asyncio.run(self.run_forever())

    def stop(self) -> None:
        self._stop_event.set()
        loop = self._loop
        if loop is not None and not loop.is_closed():
            try:
                loop.call_soon_threadsafe(self._interrupt)
            except RuntimeError:
                pass

    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    def _interrupt(self) -> None:
        if self._wake is not None:
            self._wake.set()
        if self._session is not None and not self._session.done():
            self._session.cancel()

    async def run_forever(self) -> None:
        self._wake = asyncio.Event()
        self._loop = asyncio.get_running_loop()
        record(f"[FEED] supervisor start url={self._url}", INFO_EVENT_LEVEL)
        while not self._stop_event.is_set():
            self._set_state(ConnectionState.CONNECTING)
            reason: Optional[TransportError] = None
            self._session = asyncio.ensure_future(self._run_session())
            try:
                await self._session
            except asyncio.CancelledError:
                if not (self._session.cancelled() and self._stop_event.is_set()):
                    raise
            except TransportError as exc:
                reason = exc
            except Exception as exc:
                reason = _wrap_error(exc)
            finally:
                self._session = None
            if self._stop_event.is_set():
                break
            self._set_state(ConnectionState.DISCONNECTED)
            self._log_reconnect(reason or TransportError("receive loop ended"))
            self.backoff_count += 1
            await self._backoff()
        self._set_state(ConnectionState.CLOSING)
        self._set_state(ConnectionState.DISCONNECTED)
        record("[FEED] supervisor stopped", INFO_EVENT_LEVEL)
        self.finished.emit()

    async def _run_session(self) -> None:
        async with self._connect(self._url) as ws:
            await ws.send(self._subscribe_message)
            self._set_state(ConnectionState.SUBSCRIBED)
            await self._receive(ws)

    async def _backoff(self) -> None:
        sleeper = asyncio.ensure_future(self._sleep(self._reconnect_delay_s))
        waker = asyncio.ensure_future(self._wake.wait())
        _, pending = await asyncio.wait({sleeper, waker}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _receive(self, ws: Any) -> None:
        self._set_state(ConnectionState.RECEIVING)
        while not self._stop_event.is_set():
            try:
                message = await asyncio.wait_for(ws.recv(), timeout=self._recv_poll_s)
            except asyncio.TimeoutError:
                continue
            except ConnectionClosed as exc:
                if self._stop_event.is_set():
                    return
                raise TransportError(f"closed by peer: {exc}") from exc
            self._forward(message)

    def _forward(self, message: Any) -> None:
        if isinstance(message, (bytes, bytearray)):
            text = bytes(message).decode("utf-8", errors="replace")
        else:
            text = str(message)
        self.frames_received += 1
        self._broadcaster.publish(FEED_TOPIC, text)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._logger.debug("[FEED] state %s -> %s", self._state.value, state.value)
        self._state = state
        if state == ConnectionState.SUBSCRIBED:
            record(f"[FEED] subscribed url={self._url}", INFO_EVENT_LEVEL)
        self.status.emit(state.value)

    def _log_reconnect(self, error: TransportError) -> None:
        reason = str(error) or "unknown"
        kind = _error_kind(error)
        now = time.monotonic()
        last_log_ts = self._reconnect_log_ts.get(kind)
        if last_log_ts is None or now - last_log_ts >= self._reconnect_log_dedup_s:
            self._reconnect_log_ts[kind] = now
            self._logger.warning(
                "[FEED] reconnect in %.1fs reason=%s", self._reconnect_delay_s, reason
            )
        else:
            self._logger.debug(
                "[FEED] reconnect in %.1fs reason=%s", self._reconnect_delay_s, reason
            )


def _wrap_error(exc: BaseException) -> TransportError:
    error = TransportError(f"{type(exc).__name__}: {exc}")
    error.__cause__ = exc
    return error


def _error_kind(error: TransportError) -> str:
    cause = error.__cause__
    return type(cause).__name__ if cause is not None else type(error).__name__
