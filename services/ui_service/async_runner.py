"""
Background event loop for driving the async services from Streamlit reruns.
"""

import asyncio
import threading
from typing import Any, Coroutine, Optional

import streamlit as st

from utils.logging_config import get_logger


class AsyncRunner:
    """
    Runs one event loop in a daemon thread.
    Detached persistence tasks keep running on it between script reruns.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name="greenbot-event-loop", daemon=True)
        self._thread.start()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro: Coroutine, timeout: Optional[float] = None) -> Any:
        """Submit a coroutine to the loop and block until it returns"""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        self.logger.info("Event loop stopped")


@st.cache_resource
def get_async_runner() -> AsyncRunner:
    """Get the process-wide runner (shared by all sessions)"""
    return AsyncRunner()
