"""Health service — the watchdog state machine.

    INIT ──> CHECKING ──(ok)──────────────> CHECKING        sleep check_interval
             CHECKING ──(fail, retries>0)─> CHECKING        sleep check_interval_failed
             CHECKING ──(fail, retries=0)─> FAILED          no sleep
             FAILED ──(run command)───────> GRACE_WAITING
             GRACE_WAITING ───────────────> CHECKING        sleep wait_after_command

The retry budget counts consecutive failures: any successful check restores
it, and it is refilled when the command fires.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from enum import Enum

import httpx

from .command import CommandError, run_command
from .engine import create_client, probe
from .models import Config

logger = logging.getLogger(__name__)


class State(str, Enum):
    INIT = "init"
    CHECKING = "checking"
    FAILED = "failed"
    GRACE_WAITING = "grace_waiting"


class Service:
    """Runs the health check loop for one target."""

    def __init__(self, config: Config, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self.client = client or create_client(config.grace)
        self.remaining_retries = config.grace.retry_count
        self.state = State.INIT
        self._handlers: dict[State, Callable[[], Awaitable[State]]] = {
            State.INIT: self._init,
            State.CHECKING: self._check,
            State.FAILED: self._failed,
            State.GRACE_WAITING: self._grace_waiting,
        }

    async def run(self) -> None:
        """Loop forever. Only a RequestBuildError from the prober gets out."""
        while True:
            await self.step()

    async def step(self) -> State:
        """Run the handler for the current state and move to the state it returns."""
        previous = self.state
        self.state = await self._handlers[previous]()
        logger.debug("State %s -> %s", previous.value, self.state.value)
        return self.state

    async def aclose(self) -> None:
        await self.client.aclose()

    # ── State handlers ───────────────────────────────────────────────────

    async def _init(self) -> State:
        req = self.config.request
        logger.info(
            "Started health check: %s %s (retries=%d)",
            req.method, req.url, self.config.grace.retry_count,
        )
        return State.CHECKING

    async def _check(self) -> State:
        grace = self.config.grace
        result = await probe(self.config.request, self.client)
        logger.debug("Health check: %s", result)

        if result.ok:
            self.remaining_retries = grace.retry_count
            await self._sleep(grace.check_interval)
            return State.CHECKING

        logger.warning("Health check failed: %s", result.message)

        if self.remaining_retries == 0:
            self.remaining_retries = grace.retry_count
            return State.FAILED

        self.remaining_retries -= 1
        logger.debug("Health check remaining retries count: %d", self.remaining_retries)

        await self._sleep(grace.check_interval_failed)
        return State.CHECKING

    async def _failed(self) -> State:
        logger.info("Retry budget exhausted, running remediation command")
        try:
            run_command(self.config.command)
        except CommandError as e:
            logger.error("Failed to run command: %s (stderr: %s)", e, e.result.stderr.strip())
        return State.GRACE_WAITING

    async def _grace_waiting(self) -> State:
        wait = self.config.grace.wait_after_command
        logger.info("Waiting %.1fs before resuming health checks", wait.total_seconds())
        await self._sleep(wait)
        return State.CHECKING

    async def _sleep(self, delay: timedelta) -> None:
        await asyncio.sleep(delay.total_seconds())
