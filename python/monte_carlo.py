import logging
import os
import time
from itertools import islice
from typing import NamedTuple

import numpy as np

from errors import InvalidConfiguration
from geometry import Point
from transport import PartialResult, PointEvent

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10_000


class Share(NamedTuple):
    worker_id: int
    start: int
    count: int

    @property
    def stop(self):
        return self.start + self.count


def partition(total_points, worker_count, spread_remainder=True):
    """Split [0, total_points) into one contiguous share per worker.

    The remainder goes one point each to the first workers, or all of it to
    the last worker when spread_remainder is False.
    """
    if worker_count <= 0:
        raise InvalidConfiguration(f"Worker count must be positive, got {worker_count}")
    if total_points <= 0:
        raise InvalidConfiguration(f"Point count must be positive, got {total_points}")

    base = total_points // worker_count
    remainder = total_points % worker_count

    shares = []
    start = 0
    for i in range(worker_count):
        count = base
        if spread_remainder:
            count += 1 if i < remainder else 0
        elif i == worker_count - 1:
            count += remainder
        shares.append(Share(i, start, count))
        start += count
    return shares


def make_base_seed():
    return (int(time.time()) ^ os.getpid()) & 0xFFFFFFFF


def worker_seed(base_seed, worker_id):
    return base_seed ^ worker_id


class SampleGenerator:
    """Lazy stream of points drawn uniformly from a bounding region.

    Each iteration restarts from the seed, so two passes over the same
    generator yield the same points.
    """

    def __init__(self, region, seed=None, batch_size=DEFAULT_BATCH_SIZE):
        self.region = region
        self.seed = seed
        self.batch_size = batch_size

    def __iter__(self):
        rng = np.random.default_rng(self.seed)
        r = self.region
        while True:
            xs = rng.uniform(r.x_min, r.x_max, self.batch_size)
            ys = rng.uniform(r.y_min, r.y_max, self.batch_size)
            for x, y in zip(xs.tolist(), ys.tolist()):
                yield Point(x, y)

    def take(self, n):
        return list(islice(self, n))


def count_inside(polygon, region, share, seed, on_inside=None):
    generator = SampleGenerator(region, seed)

    # Local count only; the aggregator merges once per worker
    inside = 0
    for p in islice(generator, share.count):
        if polygon.contains(p):
            inside += 1
            if on_inside is not None:
                on_inside(p)

    return PartialResult(share.worker_id, share.count, inside)


def run_worker(polygon, region, share, seed, transport, verbose=False):
    """Compute one share and report it on transport.

    In verbose mode every inside point is sent before the final result.
    TransportFailure propagates to the caller; the transport is closed
    either way so the aggregator sees end-of-stream.
    """
    logger.debug(f"Worker {share.worker_id}: {share.count} points from index {share.start}, seed {seed}")
    start_time = time.time()
    try:
        on_inside = None
        if verbose:
            def on_inside(p):
                transport.send(PointEvent(share.worker_id, p.x, p.y))

        result = count_inside(polygon, region, share, seed, on_inside)
        transport.send(result)
    finally:
        transport.close()

    logger.debug(f"Worker {share.worker_id} done in {(time.time() - start_time) * 1000:.2f}ms: "
                 f"{result.inside_count}/{result.processed} inside")
    return result
