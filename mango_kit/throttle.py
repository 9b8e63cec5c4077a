from __future__ import annotations

import itertools
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from loguru import logger

from .errors import InferenceError
from .publish import DetectionCell
from .types import Detection, RawFrame


RunFn = Callable[[RawFrame], Iterable[Detection]]
ErrorHook = Callable[[BaseException], None]


class ThrottleState(str, Enum):
    IDLE = "idle"
    BUSY = "busy"


@dataclass
class ThrottleStats:
    frames_seen: int = 0
    frames_dispatched: int = 0
    dropped_interval: int = 0
    dropped_busy: int = 0
    runs_ok: int = 0
    runs_failed: int = 0
    runs_timed_out: int = 0


class _Run:
    """One dispatched pipeline run. Settles exactly once: done or timed out."""

    def __init__(self, frame_no: int, timeout_s: float, on_timeout: Callable[["_Run"], None]):
        self.frame_no = frame_no
        self.future: Optional[Future] = None
        self._lock = threading.Lock()
        self._settled = False
        self.timer = threading.Timer(timeout_s, on_timeout, args=(self,))
        self.timer.daemon = True

    def settle(self) -> bool:
        with self._lock:
            if self._settled:
                return False
            self._settled = True
        self.timer.cancel()
        return True


class StreamThrottle:
    """
    Samples a push-based frame stream and keeps at most one pipeline run in flight.

    Every `sample_interval`-th frame qualifies. A qualifying frame that arrives
    while a run is in flight is dropped, never queued. A run that timed out keeps
    its worker until it returns, so frames are also dropped while every one of
    the `max_workers` workers is held that way. `on_frame` never blocks: the
    Idle -> Busy transition is a non-blocking lock acquire and the run itself
    goes to a worker executor.

    Only successful runs publish into `cell`. Failures and timeouts leave the
    previous set visible and are reported to `on_error`. A run that finishes
    after its timeout, or after `close()`, has its result discarded.
    """

    def __init__(
        self,
        run: RunFn,
        *,
        sample_interval: int = 5,
        run_timeout_s: float = 3.0,
        cell: Optional[DetectionCell] = None,
        on_error: Optional[ErrorHook] = None,
        executor: Optional[Executor] = None,
        max_workers: int = 2,
    ):
        if sample_interval < 1:
            raise ValueError("sample_interval must be >= 1")
        if run_timeout_s <= 0:
            raise ValueError("run_timeout_s must be > 0")
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        self._run_fn = run
        self.sample_interval = int(sample_interval)
        self.run_timeout_s = float(run_timeout_s)
        self.cell = cell if cell is not None else DetectionCell()
        self._on_error = on_error

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mango-pipeline")
        # Submitted runs whose future is not done yet, timed-out ones included.
        # Capped at the worker count so a submit never waits in the executor queue.
        self._max_pending = int(max_workers)
        self._pending = 0
        self._pending_lock = threading.Lock()

        self._counter = itertools.count(1)
        self._busy = threading.Lock()
        self._idle = threading.Condition()
        self._closed = False
        self._stats_lock = threading.Lock()
        self.stats = ThrottleStats()

    # ------------------------------------------------------------------ #
    # Producer side
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> ThrottleState:
        return ThrottleState.BUSY if self._busy.locked() else ThrottleState.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    def on_frame(self, frame: RawFrame) -> bool:
        """Offer one frame. Returns True when it was dispatched to a run."""

        if self._closed:
            return False

        frame_no = next(self._counter)
        self._bump("frames_seen")

        if frame_no % self.sample_interval != 0:
            self._bump("dropped_interval")
            return False

        if not self._busy.acquire(blocking=False):
            self._bump("dropped_busy")
            logger.trace("Frame {} dropped: run in flight", frame_no)
            return False

        with self._pending_lock:
            workers_free = self._pending < self._max_pending
            if workers_free:
                self._pending += 1
        if not workers_free:
            # Every worker is still stuck in a timed-out run.
            self._release()
            self._bump("dropped_busy")
            logger.trace("Frame {} dropped: no free worker", frame_no)
            return False

        run = _Run(frame_no, self.run_timeout_s, self._on_timeout)
        try:
            future = self._executor.submit(self._run_fn, frame)
        except Exception as e:
            self._finish_pending()
            if run.settle():
                self._fail(run, e)
            return False

        run.future = future
        run.timer.start()
        self._bump("frames_dispatched")
        future.add_done_callback(lambda f: self._finish_pending())
        future.add_done_callback(lambda f: self._on_done(run, f))
        return True

    # ------------------------------------------------------------------ #
    # Completion side
    # ------------------------------------------------------------------ #
    def _finish_pending(self) -> None:
        with self._pending_lock:
            self._pending -= 1

    def _on_done(self, run: _Run, future: Future) -> None:
        if not run.settle():
            logger.debug("Discarding late result of frame {}", run.frame_no)
            return

        try:
            error = future.exception()
            if error is not None:
                self._report(run, error, counter="runs_failed")
                return
            if self._closed:
                logger.debug("Discarding result of frame {}: throttle closed", run.frame_no)
                return
            detections = self.cell.publish(future.result())
            self._bump("runs_ok")
            logger.debug("Frame {} published {} detections", run.frame_no, len(detections))
        except Exception as e:
            self._report(run, e, counter="runs_failed")
        finally:
            self._release()

    def _on_timeout(self, run: _Run) -> None:
        if not run.settle():
            return
        if run.future is not None and run.future.cancel():
            logger.debug("Cancelled frame {} before it started", run.frame_no)
        try:
            error = InferenceError(f"Pipeline run for frame {run.frame_no} exceeded {self.run_timeout_s:.3f}s")
            self._report(run, error, counter="runs_timed_out")
        finally:
            self._release()

    def _fail(self, run: _Run, error: BaseException) -> None:
        try:
            self._report(run, error, counter="runs_failed")
        finally:
            self._release()

    def _report(self, run: _Run, error: BaseException, *, counter: str) -> None:
        self._bump(counter)
        logger.warning("Pipeline run for frame {} failed: {}", run.frame_no, error)
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception("on_error hook raised")

    def _release(self) -> None:
        with self._idle:
            self._busy.release()
            self._idle.notify_all()

    def _bump(self, name: str) -> None:
        with self._stats_lock:
            setattr(self.stats, name, getattr(self.stats, name) + 1)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no run is in flight. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._busy.locked(), timeout=timeout)

    def close(self, wait: bool = False) -> None:
        """Stop accepting frames; results of in-flight runs are discarded."""
        self._closed = True
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> "StreamThrottle":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
