from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import threading
from typing import Optional

from .connection import Connection
from .errors import BusyReconnecting, RconError
from .net import Connector
from .settings import Settings

log = logging.getLogger(__name__)


class ReconnectState(enum.Enum):
    IDLE = "idle"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class ReConnection:
    """A `Connection` that rebuilds itself in the background after a failure.

    `exec` never raises a raw I/O error. When the session dies, the call
    that saw it (and every call after it) gets `BusyReconnecting` right away
    while a single recovery task reopens the session. Callers retry `exec`
    until it goes through.

    All state lives behind `_state_lock`, which is only ever held for plain
    reads and assignments, never across an await.
    """

    def __init__(
        self,
        session: Connection,
        password: str,
        timeout: Optional[float] = None,
        *,
        connector: Optional[Connector] = None,
    ):
        self.address = session.address
        self.settings: Settings = session.settings
        self.timeout = timeout
        self._password = password
        self._connector = connector

        self._state_lock = threading.Lock()
        self._session = session
        self._state = ReconnectState.IDLE
        self._description: Optional[str] = None
        self._last_error: Optional[Exception] = None
        self._recovery: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    async def open(
        cls,
        address: str,
        password: str,
        timeout: Optional[float] = None,
        *,
        settings: Optional[Settings] = None,
        connector: Optional[Connector] = None,
    ) -> "ReConnection":
        session = await Connection.open(address, password, timeout, settings=settings, connector=connector)
        return cls(session, password, timeout, connector=connector)

    @property
    def state(self) -> ReconnectState:
        return self._state

    @property
    def description(self) -> Optional[str]:
        """Description of the fault that started the current recovery."""
        return self._description

    @property
    def last_error(self) -> Optional[Exception]:
        return self._last_error

    @property
    def recovery(self) -> Optional[asyncio.Task]:
        task = self._recovery
        if task is None or task.done():
            return None
        return task

    async def exec(self, command: str) -> str:
        with self._state_lock:
            if self._closed:
                raise RconError(f"handle for {self.address} is closed")
            if self._state is not ReconnectState.IDLE:
                raise BusyReconnecting(self._description or "unknown error")
            session = self._session

        try:
            return await session.exec(command)
        except RconError as exc:
            if not session.closed:
                raise
            raise self._start_recovery(session, exc) from exc

    def _start_recovery(self, failed: Connection, error: RconError) -> RconError:
        with self._state_lock:
            if self._closed:
                return RconError(f"handle for {self.address} is closed")
            if self._session is not failed or self._state is not ReconnectState.IDLE:
                # recovery for this session was already started by another caller
                return BusyReconnecting(self._description or str(error))
            self._state = ReconnectState.RECONNECTING
            self._description = str(error)
            self._last_error = error
            self._recovery = asyncio.get_running_loop().create_task(self._recover())

        log.warning("rcon session to %s lost, reconnecting: %s", self.address, error)
        return BusyReconnecting(str(error))

    async def _recover(self) -> Optional[Connection]:
        limit = self.settings.max_reconnect_attempts
        attempt = 0
        while True:
            attempt += 1
            try:
                session = await Connection.open(
                    self.address,
                    self._password,
                    self.timeout,
                    settings=self.settings,
                    connector=self._connector,
                )
            except RconError as exc:
                log.warning("reconnect attempt %d to %s failed: %s", attempt, self.address, exc)
                if limit is not None and attempt >= limit:
                    with self._state_lock:
                        self._state = ReconnectState.FAILED
                        self._last_error = exc
                    log.error("giving up on %s after %d reconnect attempt(s)", self.address, attempt)
                    return None
                with self._state_lock:
                    self._last_error = exc
                await asyncio.sleep(self.settings.reconnect_delay)
                continue
            except Exception as exc:
                # not a connection problem, so retrying will not help
                log.exception("reconnect attempt %d to %s raised unexpectedly", attempt, self.address)
                with self._state_lock:
                    self._state = ReconnectState.FAILED
                    self._last_error = exc
                return None

            with self._state_lock:
                stale = self._closed
                old = self._session
                if not stale:
                    self._session = session
                    self._state = ReconnectState.IDLE
                    self._description = None
            if stale:
                await session.close()
                return None
            await old.close()
            log.info("reconnected to %s after %d attempt(s)", self.address, attempt)
            return session

    async def reconnect(self) -> None:
        """Start a new round of recovery after the previous one gave up."""
        with self._state_lock:
            if self._closed:
                raise RconError(f"handle for {self.address} is closed")
            if self._state is not ReconnectState.FAILED:
                return
            self._state = ReconnectState.RECONNECTING
            self._recovery = asyncio.get_running_loop().create_task(self._recover())
        log.info("restarting recovery for %s", self.address)

    async def close(self) -> None:
        with self._state_lock:
            self._closed = True
            task = self._recovery
            session = self._session
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await session.close()

    async def __aenter__(self) -> "ReConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
