import logging
import queue
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Tuple

from errors import PartialCoverage, TransportFailure, WorkerTimeout
from transport import PartialResult, PointEvent

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class AggregateState:
    """Running totals; only ever touched by the aggregating thread."""

    def __init__(self):
        self.total_processed = 0
        self.total_inside = 0
        self.reported = set()
        self._streamed = {}

    def apply(self, message):
        if isinstance(message, PointEvent):
            if message.worker_id in self.reported:
                raise TransportFailure(f"worker {message.worker_id}: point event after its result")
            self._streamed[message.worker_id] = self._streamed.get(message.worker_id, 0) + 1
            self.total_inside += 1
            self.total_processed += 1
        elif isinstance(message, PartialResult):
            if message.worker_id in self.reported:
                raise TransportFailure(f"worker {message.worker_id}: duplicate result")
            # Streamed points were already counted as they arrived
            streamed = self._streamed.pop(message.worker_id, 0)
            if streamed > message.inside_count:
                raise TransportFailure(
                    f"worker {message.worker_id}: streamed {streamed} points "
                    f"but reported {message.inside_count} inside")
            self.total_inside += message.inside_count - streamed
            self.total_processed += message.processed - streamed
            self.reported.add(message.worker_id)
        else:
            raise TypeError(f"Unexpected message {message!r}")


@dataclass
class Estimate:
    area: float
    total_points: int
    total_processed: int
    total_inside: int
    missing_workers: Tuple[int, ...] = ()
    errors: Tuple[Exception, ...] = ()
    points: List[PointEvent] = field(default_factory=list, repr=False)

    @property
    def partial(self):
        # Rejected records leave the totals in doubt even when every worker reported
        return (bool(self.missing_workers) or bool(self.errors)
                or self.total_processed != self.total_points)

    def check(self):
        if self.partial:
            raise PartialCoverage(self)
        return self


_MESSAGE = "message"
_DONE = "done"


class Aggregator:
    """Merges worker messages into a single area estimate.

    Each transport gets its own reader thread; readers only forward messages
    to a queue, and the draining thread is the single writer of the state.
    """

    def __init__(self, total_points, region, worker_ids, timeout=DEFAULT_TIMEOUT,
                 on_progress=None, on_message=None, keep_points=False):
        self.total_points = total_points
        self.region = region
        self.worker_ids = tuple(worker_ids)
        self.timeout = timeout
        self.on_progress = on_progress
        self.on_message = on_message
        self.keep_points = keep_points

        self.state = AggregateState()
        self.errors = []
        self.points = []
        self._percent = None

    def feed(self, message):
        try:
            self.state.apply(message)
        except TransportFailure as e:
            logger.warning(str(e))
            self.errors.append(e)
            return

        if self.keep_points and isinstance(message, PointEvent):
            self.points.append(message)
        if self.on_message is not None:
            self.on_message(message)

        percent = min(self.state.total_processed * 100 // self.total_points, 100)
        if percent != self._percent:
            self._percent = percent
            if self.on_progress is not None:
                self.on_progress(percent)

    def drain(self, transports):
        """Read every transport to end-of-stream and return the estimate."""
        events = queue.Queue()
        pending = len(transports)
        with ThreadPoolExecutor(max_workers=max(pending, 1)) as executor:
            futures = [executor.submit(self._read, t, events) for t in transports]
            while pending:
                kind, payload = events.get()
                if kind == _DONE:
                    pending -= 1
                    if payload is not None:
                        self.errors.append(payload)
                else:
                    self.feed(payload)
            for future in futures:
                future.result()
        return self.estimate()

    def _read(self, transport, events):
        error = None
        try:
            while True:
                message, ok = transport.receive(self.timeout)
                if not ok:
                    break
                events.put((_MESSAGE, message))
        except (TransportFailure, WorkerTimeout) as e:
            logger.warning(f"{transport.name}: {e}")
            error = e
        finally:
            transport.close()
            events.put((_DONE, error))

    def estimate(self):
        state = self.state
        missing = tuple(sorted(set(self.worker_ids) - state.reported))
        area = self.region.area() * state.total_inside / self.total_points
        result = Estimate(area, self.total_points, state.total_processed, state.total_inside,
                          missing, tuple(self.errors), list(self.points))
        if result.partial:
            logger.warning(f"Partial coverage: {state.total_processed}/{self.total_points} points, "
                           f"missing workers {list(missing)}, {len(self.errors)} transport errors")
        return result
