"""Shared fakes, exposed as factory fixtures."""

from __future__ import annotations

import asyncio

import pytest

from pagestamp.errors import EnvironmentUnavailable


class FakeRunner:
    """History command runner returning canned output per path."""

    def __init__(self, outputs: dict[str, str] | None = None, delay: float = 0.0) -> None:
        self.outputs = outputs or {}
        self.delay = delay
        self.calls: list[str] = []

    async def run_history_command(self, path: str) -> str:
        self.calls.append(path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if path not in self.outputs:
            raise EnvironmentUnavailable(f"git unavailable for {path}")
        return self.outputs[path]


class FakeResolver:
    """Resolver counting calls; ``results`` maps file id to millis or an exception."""

    def __init__(self, results: dict[int, int | Exception], delay: float = 0.0) -> None:
        self.results = results
        self.delay = delay
        self.calls: list[int] = []

    async def creation_time(self, file_id: int) -> int:
        self.calls.append(file_id)
        if self.delay:
            await asyncio.sleep(self.delay)
        result = self.results[file_id]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture()
def make_runner():
    return FakeRunner


@pytest.fixture()
def make_resolver():
    return FakeResolver
