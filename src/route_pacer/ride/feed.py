"""PositionFeed: background polling of a live position source.

Observations are queued strictly in arrival order.  When the queue is full
the poller waits for the consumer instead of dropping samples, because every
observation carries elapsed time that the ride clock must account for.
"""

from __future__ import annotations

import logging
import queue
import threading
import time

from route_pacer.ride.models import PositionObservation

_logger = logging.getLogger(__name__)


class PositionFeed:
    """Polls *source* at *target_hz* and enqueues :class:`PositionObservation`.

    Parameters
    ----------
    source:
        Object with ``read_position() -> dict | None`` (a GPS collaborator).
    parser:
        Callable turning a raw dict into a :class:`PositionObservation`.
        Defaults to :meth:`PositionObservation.from_dict`.
    target_hz:
        Polling frequency in Hz.
    queue_maxsize:
        Number of observations buffered before the poller waits.
    """

    def __init__(
        self,
        source,
        parser=None,
        target_hz: float = 1.0,
        queue_maxsize: int = 600,
    ) -> None:
        self._source = source
        self._parse = parser or PositionObservation.from_dict
        self._interval = 1.0 / target_hz
        self._queue: queue.Queue[PositionObservation] = queue.Queue(maxsize=queue_maxsize)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the background polling thread."""
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="PositionFeed")
        self._thread.start()

    def stop(self) -> None:
        """Signal the polling thread to stop and join it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None

    def get_observation(self, timeout: float = 0.1) -> PositionObservation | None:
        """Return the next queued observation, or None if none arrives within *timeout* s."""
        try:
            if timeout <= 0:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def queue_size(self) -> int:
        """Return the current number of buffered observations."""
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _run(self) -> None:
        while not self._stop_event.is_set():
            t0 = time.monotonic()
            raw = self._source.read_position()
            if raw:
                try:
                    obs = self._parse(raw)
                except (KeyError, ValueError, TypeError) as exc:
                    _logger.warning("Skipping unreadable position sample %r: %s", raw, exc)
                else:
                    self._enqueue(obs)
            elapsed = time.monotonic() - t0
            wait = self._interval - elapsed
            if wait > 0:
                self._stop_event.wait(wait)

    def _enqueue(self, obs: PositionObservation) -> None:
        """Put *obs* in the queue, waiting for room until the feed is stopped."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(obs, timeout=0.1)
                return
            except queue.Full:
                continue
