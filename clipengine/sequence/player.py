"""
Time-driven dispatch of a Schedule to an audio output sink.

A run takes one monotonic anchor and waits for anchor + offset before each
start, recomputing the remaining time against the anchor after every wake-up,
so scheduling overhead never accumulates. Cancelling a run revokes every start
that has not fired yet; clips already handed to the sink keep playing.
"""
import logging
import threading
import time
from typing import Callable, List, Mapping, Optional, Protocol

from clipengine.core.types import SampleBuffer
from clipengine.sequence.scheduler import Schedule, ScheduledStart

logger = logging.getLogger("clipengine")


class AudioSink(Protocol):
    def start(self, clip_ref: str, buffer: SampleBuffer) -> None:
        """Begin playing buffer now. Overlapping starts must be mixed by the sink."""


class PlaybackRun:
    def __init__(
        self,
        plan: Schedule,
        clips: Mapping[str, SampleBuffer],
        sink: AudioSink,
        clock: Callable[[], float] = time.monotonic,
        on_start: Optional[Callable[[ScheduledStart], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ):
        self.plan = plan
        self._clips = clips
        self._sink = sink
        self._clock = clock
        self._on_start = on_start
        self._on_complete = on_complete
        self._cancel = threading.Event()
        self._done = threading.Event()
        self._thread = threading.Thread(target=self._run, name="clipengine-playback", daemon=True)
        self.anchor: Optional[float] = None
        self.started: List[ScheduledStart] = []
        self.revoked: List[ScheduledStart] = []
        self.dispatch_lateness: List[float] = []
        self.completed = False
        self.error: Optional[BaseException] = None

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def begin(self) -> "PlaybackRun":
        self._thread.start()
        return self

    def cancel(self) -> None:
        """Revoke all pending starts. Safe to call more than once or after completion."""
        if not self._done.is_set():
            logger.info("Cancelling sequence playback")
        self._cancel.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def _wait_until(self, deadline: float) -> bool:
        """Sleep until deadline on the run's clock. False if cancelled first."""
        while True:
            if self._cancel.is_set():
                return False
            remaining = deadline - self._clock()
            if remaining <= 0:
                return True
            if self._cancel.wait(remaining):
                return False

    def _run(self):
        self.anchor = self._clock()
        pending = self.plan.dispatch_order()
        try:
            while pending:
                nxt = pending[0]
                if not self._wait_until(self.anchor + nxt.offset_s):
                    break
                self.dispatch_lateness.append(self._clock() - (self.anchor + nxt.offset_s))
                self._sink.start(nxt.clip_ref, self._clips[nxt.clip_ref])
                pending.pop(0)
                self.started.append(nxt)
                logger.debug("Started %s at +%.3fs", nxt.clip_ref, nxt.offset_s)
                if self._on_start is not None:
                    self._on_start(nxt)

            if not pending and self._wait_until(self.anchor + self.plan.complete_at_s):
                self.completed = True
                if self._on_complete is not None:
                    self._on_complete()
        except Exception as e:
            logger.exception("Sequence playback failed")
            self.error = e
        finally:
            self.revoked = list(pending)
            self._done.set()


class SequencePlayer:
    """One active run at a time; starting a new run cancels the previous one."""

    def __init__(self, sink: AudioSink, clock: Callable[[], float] = time.monotonic):
        self.sink = sink
        self.clock = clock
        self._current: Optional[PlaybackRun] = None
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[PlaybackRun]:
        return self._current

    def play(
        self,
        plan: Schedule,
        clips: Mapping[str, SampleBuffer],
        on_start: Optional[Callable[[ScheduledStart], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> PlaybackRun:
        with self._lock:
            if self._current is not None and not self._current.done:
                self._current.cancel()
            run = PlaybackRun(plan, clips, self.sink, self.clock, on_start, on_complete)
            self._current = run
            return run.begin()

    def stop(self, timeout: Optional[float] = 1.0) -> None:
        with self._lock:
            run = self._current
        if run is not None:
            run.cancel()
            run.join(timeout)
