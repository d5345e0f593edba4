"""Streaming websocket connection with reconnect, heartbeat and resubscribe.

Used by the ticker feed. Frames that are not JSON objects are dropped
here, so handlers only ever see decoded dicts.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable

import websockets
from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from perpbook.logging import get_logger

MessageHandler = Callable[[dict], Awaitable[None]]
StatusHandler = Callable[[bool], None]


class StreamConnection:
    """One websocket with automatic reconnection.

    Args:
        url: Websocket endpoint.
        on_message: Async handler for every decoded JSON object.
        on_status: Optional callback told about connect/disconnect.
        reconnect_delay: First backoff delay in seconds.
        max_reconnect_delay: Backoff ceiling in seconds.
        heartbeat_interval: Seconds between pings; 0 disables the heartbeat.
        max_reconnect_attempts: Give up after this many failed attempts in a
            row; 0 retries forever.
    """

    def __init__(
        self,
        url: str,
        on_message: MessageHandler,
        on_status: StatusHandler | None = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 60.0,
        heartbeat_interval: float = 30.0,
        max_reconnect_attempts: int = 0,
    ) -> None:
        self._url = url
        self._on_message = on_message
        self._on_status = on_status
        self._base_delay = reconnect_delay
        self._max_delay = max_reconnect_delay
        self._heartbeat_interval = heartbeat_interval
        self._max_attempts = max_reconnect_attempts

        self._ws: ClientConnection | None = None
        self._connected = False
        self._closing = False
        self._delay = reconnect_delay
        self._channels: list[str] = []
        self._request_id = 0

        self._reader: asyncio.Task[None] | None = None
        self._pinger: asyncio.Task[None] | None = None

        self._logger = get_logger("stream")

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def channels(self) -> list[str]:
        """Channels that will be (re)subscribed on every connect."""
        return list(self._channels)

    async def connect(self) -> None:
        """Open the socket and start the reader and heartbeat tasks.

        Failures are retried with backoff until :meth:`close` is called or
        the attempt limit is hit.

        Raises:
            ConnectionError: When the attempt limit is exhausted.
        """
        self._closing = False
        attempts = 0
        while not self._closing:
            try:
                await self._open()
                return
            except (InvalidHandshake, InvalidURI, OSError) as e:
                attempts += 1
                self._logger.warning(
                    "stream_connect_failed",
                    url=self._url,
                    attempt=attempts,
                    error=str(e),
                )
                if self._max_attempts and attempts >= self._max_attempts:
                    raise ConnectionError(f"Stream connection failed: {e}") from e
                await self._backoff()

    async def close(self) -> None:
        """Stop background tasks and close the socket."""
        self._closing = True
        await self._stop_tasks()
        await self._close_socket()
        self._set_connected(False)
        self._logger.info("stream_closed", url=self._url)

    async def subscribe(self, channels: list[str]) -> None:
        """Subscribe to channels now (if connected) and on every reconnect."""
        for channel in channels:
            if channel not in self._channels:
                self._channels.append(channel)
        if self._connected:
            await self._send_request("SUBSCRIBE", channels)

    async def unsubscribe(self, channels: list[str]) -> None:
        self._channels = [c for c in self._channels if c not in channels]
        if self._connected:
            await self._send_request("UNSUBSCRIBE", channels)

    async def send(self, message: dict) -> None:
        """Send a JSON message.

        Raises:
            ConnectionError: If the socket is not open.
        """
        if self._ws is None or not self._connected:
            raise ConnectionError("Stream is not connected")
        await self._ws.send(json.dumps(message))

    # --- Internal ---

    async def _open(self) -> None:
        self._logger.info("stream_connecting", url=self._url)
        self._ws = await websockets.connect(self._url)
        self._delay = self._base_delay
        self._set_connected(True)
        self._logger.info("stream_connected", url=self._url)

        self._reader = asyncio.create_task(self._read_loop())
        if self._heartbeat_interval > 0:
            self._pinger = asyncio.create_task(self._ping_loop())

        if self._channels:
            await self._send_request("SUBSCRIBE", list(self._channels))

    async def _send_request(self, method: str, channels: list[str]) -> None:
        self._request_id += 1
        await self.send({"method": method, "params": channels, "id": self._request_id})
        self._logger.info("stream_request_sent", method=method, channels=channels)

    async def _read_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return
        try:
            async for frame in ws:
                message = _decode(frame)
                if message is None:
                    self._logger.debug("stream_frame_dropped")
                    continue
                try:
                    await self._on_message(message)
                except Exception:
                    self._logger.exception("stream_handler_error")
        except asyncio.CancelledError:
            raise
        except ConnectionClosed as e:
            self._logger.warning("stream_connection_closed", code=e.code, reason=str(e.reason))
        except Exception:
            self._logger.exception("stream_read_error")

        self._set_connected(False)
        if not self._closing:
            await self._reconnect()

    async def _ping_loop(self) -> None:
        while self._connected and self._ws is not None:
            await asyncio.sleep(self._heartbeat_interval)
            ws = self._ws
            if ws is None or not self._connected:
                return
            try:
                pong = await ws.ping()
                await asyncio.wait_for(pong, timeout=10.0)
            except (asyncio.TimeoutError, ConnectionClosed):
                self._logger.warning("stream_heartbeat_failed", url=self._url)
                # Closing the socket ends the read loop, which reconnects.
                await self._close_socket()
                return

    async def _reconnect(self) -> None:
        if self._pinger is not None and not self._pinger.done():
            self._pinger.cancel()
        self._pinger = None
        await self._close_socket()
        self._logger.info("stream_reconnecting", delay_s=self._delay, url=self._url)
        await self._backoff()
        if self._closing:
            return
        try:
            await self.connect()
        except ConnectionError:
            self._logger.error("stream_reconnect_gave_up", url=self._url)

    async def _backoff(self) -> None:
        await asyncio.sleep(self._delay)
        self._delay = min(self._delay * 2, self._max_delay)

    async def _stop_tasks(self) -> None:
        current = asyncio.current_task()
        for task in (self._pinger, self._reader):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._pinger = None
        self._reader = None

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except (ConnectionClosed, OSError):
            self._logger.debug("stream_close_error", url=self._url)

    def _set_connected(self, connected: bool) -> None:
        changed = connected != self._connected
        self._connected = connected
        if changed and self._on_status is not None:
            self._on_status(connected)


def _decode(frame: str | bytes) -> dict | None:
    """Decode a frame into a JSON object, or None if it is not one."""
    try:
        if isinstance(frame, bytes):
            frame = frame.decode("utf-8")
        data = json.loads(frame)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None
