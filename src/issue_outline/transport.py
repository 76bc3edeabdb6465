"""HTTP transport with a blocking and a non-blocking request contract.

Blocking requests suspend the caller until the whole response is available.
Non-blocking requests run on a worker pool; their completions are queued and
only handed to callbacks when the host thread calls ``dispatch_pending()``, so
callbacks never touch a document from a worker thread.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import requests

from .exceptions import TransportError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

logger: logging.Logger = logging.getLogger(__name__)

USER_AGENT: Final[str] = "issue-outline/0.1.0"


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a non-blocking request: exactly one of the fields is set."""

    response: requests.Response | None = None
    error: TransportError | None = None

    @property
    def ok(self) -> bool:
        return self.response is not None


CompletionCallback = Callable[[FetchResult], None]


class HttpTransport:
    """Thin wrapper over ``requests`` sessions.

    Blocking requests use the transport's own session. Each worker thread of
    the non-blocking pool gets a session of its own from ``session_factory``;
    ``requests.Session`` objects are never shared across threads.
    """

    _session: requests.Session
    _session_factory: Callable[[], requests.Session]
    _local: threading.local
    _worker_sessions: list[requests.Session]
    _lock: threading.Lock
    _timeout: float | None
    _executor: ThreadPoolExecutor | None
    _max_workers: int
    _completed: queue.SimpleQueue[tuple[CompletionCallback, FetchResult]]
    _in_flight: list[Future[None]]

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        timeout: float | None = None,
        max_workers: int = 4,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self._session_factory = session_factory
        self._session = session or session_factory()
        self._session.headers.setdefault("User-Agent", USER_AGENT)
        self._local = threading.local()
        self._worker_sessions = []
        self._lock = threading.Lock()
        self._timeout = timeout
        self._max_workers = max_workers
        self._executor = None
        self._completed = queue.SimpleQueue()
        self._in_flight = []

    def __enter__(self) -> HttpTransport:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def get(self, url: str, headers: Mapping[str, str] | None = None) -> requests.Response:
        """GET ``url`` and block until the response has been read.

        Raises:
            TransportError: On connection failure or an HTTP error status.
        """
        return self._request(self._session, url, headers)

    def _request(
        self,
        session: requests.Session,
        url: str,
        headers: Mapping[str, str] | None,
    ) -> requests.Response:
        logger.debug(f"GET {url}")
        try:
            response = session.get(url, headers=dict(headers or {}), timeout=self._timeout)
        except requests.RequestException as e:
            msg = f"Request to {url} failed: {e}"
            raise TransportError(msg, url=url) from e

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            msg = f"Request to {url} failed with status {response.status_code}"
            raise TransportError(msg, url=url, status=response.status_code) from e
        return response

    def _worker_session(self) -> requests.Session:
        session: requests.Session | None = getattr(self._local, "session", None)
        if session is None:
            session = self._session_factory()
            session.headers.setdefault("User-Agent", USER_AGENT)
            self._local.session = session
            with self._lock:
                self._worker_sessions.append(session)
        return session

    def get_async(
        self,
        url: str,
        on_complete: CompletionCallback,
        headers: Mapping[str, str] | None = None,
    ) -> Future[None]:
        """Start a GET of ``url`` without waiting for it.

        ``on_complete`` is called later, from ``dispatch_pending()``, with the
        outcome. Completion order across requests is arbitrary.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="issue-outline")

        def _run() -> None:
            try:
                result = FetchResult(response=self._request(self._worker_session(), url, headers))
            except TransportError as e:
                result = FetchResult(error=e)
            self._completed.put((on_complete, result))

        future = self._executor.submit(_run)
        self._in_flight = [f for f in self._in_flight if not f.done()]
        self._in_flight.append(future)
        return future

    def dispatch_pending(self) -> int:
        """Run the callbacks of every completed non-blocking request, returning how many ran."""
        count = 0
        while True:
            try:
                callback, result = self._completed.get_nowait()
            except queue.Empty:
                return count
            callback(result)
            count += 1

    def wait_all(self, timeout: float | None = None) -> None:
        """Block until every in-flight non-blocking request has completed."""
        if self._in_flight:
            _ = wait(self._in_flight, timeout=timeout)
            self._in_flight = [f for f in self._in_flight if not f.done()]

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        with self._lock:
            sessions, self._worker_sessions = self._worker_sessions, []
        for session in sessions:
            session.close()
        self._session.close()
