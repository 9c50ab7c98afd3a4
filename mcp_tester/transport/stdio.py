"""
STDIO transport for MCP communication.

This module implements MCP communication over stdin/stdout with a subprocess,
using newline-delimited JSON-RPC 2.0.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from typing import Any

from .base import BaseTransport, timeout_seconds
from .models import MCPClientError, MCPError, MCPErrorCode, MCPRequest, MCPResponse

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20
STREAM_LIMIT = 16 * 1024 * 1024  # tool lists can be a single very long line


class STDIOTransport(BaseTransport):
    """
    MCP transport over STDIO.

    Spawns a subprocess and communicates via stdin/stdout using
    newline-delimited JSON-RPC 2.0 messages. Responses are matched to
    requests by id, so several requests may be in flight at once.
    """

    def __init__(
        self,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
        **options: Any,
    ):
        """
        Initialize STDIO transport.

        Args:
            command: The command/executable to run
            args: Optional list of command arguments
            env: Optional environment variables to pass to the subprocess
            **options: Session options forwarded to BaseTransport
        """
        super().__init__(**options)
        self.command = command
        self.args = args or []
        self.env = env
        self._process: asyncio.subprocess.Process | None = None
        self._pending: dict[int | str, asyncio.Future[MCPResponse]] = {}
        self._reader_task: asyncio.Task | None = None
        self._stderr_task: asyncio.Task | None = None
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return (
            self._connected
            and self._process is not None
            and self._process.returncode is None
        )

    async def connect(self) -> None:
        """Spawn the subprocess."""
        if self._process is not None:
            return

        cmd = [self.command] + self.args
        logger.debug(f"Spawning MCP server process: {cmd}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
                limit=STREAM_LIMIT,
            )
        except FileNotFoundError as e:
            raise MCPClientError(
                MCPError(
                    MCPErrorCode.EXECUTABLE_NOT_FOUND,
                    f"Command not found: {self.command} (ENOENT)",
                    data={"command": cmd},
                )
            ) from e
        except OSError as e:
            raise MCPClientError(
                MCPError.process_error(
                    f"Failed to spawn process {self.command}: {e}",
                    data={"command": cmd},
                )
            ) from e

        self._connected = True
        self._reader_task = asyncio.create_task(self._read_responses())
        self._stderr_task = asyncio.create_task(self._drain_stderr())

    async def disconnect(self) -> None:
        """Terminate the subprocess."""
        for task in (self._reader_task, self._stderr_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._reader_task = None
        self._stderr_task = None

        if self._process:
            proc = self._process
            self._process = None  # Clear reference first

            try:
                # Close stdin to signal the process to exit
                if proc.stdin:
                    proc.stdin.close()

                if proc.returncode is None:
                    proc.terminate()
                await asyncio.wait_for(proc.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                try:
                    proc.kill()
                    await asyncio.wait_for(proc.wait(), timeout=2.0)
                except (asyncio.TimeoutError, ProcessLookupError, OSError):
                    logger.warning(f"Could not reap MCP server process {proc.pid}")
            except (ProcessLookupError, BrokenPipeError, ConnectionResetError, OSError):
                pass  # Already dead

        self._fail_pending(MCPError.connection_error("Transport disconnected"))
        self._connected = False

    def _fail_pending(self, error: MCPError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_result(MCPResponse.from_error(error))
        self._pending.clear()

    async def _read_responses(self) -> None:
        """Background task to read responses from stdout."""
        if not self._process or not self._process.stdout:
            return

        while True:
            try:
                line = await self._process.stdout.readline()
            except (ValueError, OSError) as e:
                logger.error(f"Failed reading from MCP server process: {e}")
                break
            if not line:
                break  # EOF

            try:
                data = json.loads(line.decode("utf-8"))
            except (json.JSONDecodeError, UnicodeDecodeError):
                logger.debug(f"Skipping non-JSON output line: {line[:200]!r}")
                continue

            if not isinstance(data, dict):
                continue

            # Match response to request; server-initiated messages are ignored
            request_id = data.get("id")
            if request_id in self._pending and ("result" in data or "error" in data):
                future = self._pending.pop(request_id)
                if not future.done():
                    future.set_result(MCPResponse.from_jsonrpc(data))

        returncode = self._process.returncode if self._process else None
        self._fail_pending(
            MCPError.connection_error(
                f"Server process closed its output (exit code {returncode})",
                data=self.stderr_output(),
            )
        )

    async def _drain_stderr(self) -> None:
        """Keep stderr flowing so a chatty server never blocks on a full pipe."""
        if not self._process or not self._process.stderr:
            return
        while True:
            try:
                line = await self._process.stderr.readline()
            except (ValueError, OSError):
                return
            if not line:
                return
            text = line.decode("utf-8", errors="replace").rstrip()
            self._stderr_tail.append(text)
            logger.debug(f"[{self.command}] {text}")

    def stderr_output(self) -> dict[str, Any] | None:
        """Return the last lines the server wrote to stderr, if any."""
        if not self._stderr_tail:
            return None
        return {"stderr": "\n".join(self._stderr_tail)}

    async def _write(self, request: MCPRequest) -> None:
        payload = json.dumps(request.to_dict()) + "\n"
        self._process.stdin.write(payload.encode("utf-8"))
        await self._process.stdin.drain()

    async def notify(self, notification: MCPRequest) -> None:
        if not self.is_connected or not self._process.stdin:
            raise MCPClientError(MCPError.connection_error("Transport not connected. Call connect() first."))
        try:
            await self._write(notification)
        except (BrokenPipeError, ConnectionResetError) as e:
            raise MCPClientError(
                MCPError.connection_error(
                    "Process pipe broken - subprocess may have crashed",
                    data=self.stderr_output(),
                )
            ) from e

    async def send(self, request: MCPRequest, timeout_ms: int | None = None) -> MCPResponse:
        """
        Send a JSON-RPC request over STDIO.

        Args:
            request: The MCP request to send
            timeout_ms: Timeout in milliseconds

        Returns:
            MCPResponse with result or error
        """
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        if not self.is_connected:
            return MCPResponse.from_error(
                MCPError.connection_error("Transport not connected. Call connect() first.")
            )

        if not self._process or not self._process.stdin:
            return MCPResponse.from_error(
                MCPError.connection_error("Process stdin not available")
            )

        future: asyncio.Future[MCPResponse] = asyncio.get_running_loop().create_future()
        self._pending[request.id] = future

        try:
            await self._write(request)
        except (BrokenPipeError, ConnectionResetError):
            self._pending.pop(request.id, None)
            return MCPResponse.from_error(
                MCPError.connection_error(
                    "Process pipe broken - subprocess may have crashed",
                    data=self.stderr_output(),
                )
            )

        try:
            return await asyncio.wait_for(future, timeout=timeout_seconds(timeout_ms))
        except asyncio.TimeoutError:
            self._pending.pop(request.id, None)
            return MCPResponse.from_error(
                MCPError.timeout_error(
                    f"Request timed out after {timeout_ms}ms",
                    data={"method": request.method},
                )
            )

    def __repr__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        cmd = " ".join([self.command] + self.args)
        return f"STDIOTransport(command={cmd!r}, status={status})"
