"""
Deployments: start one worker per share and drain their transports.

    pipe    forked processes, one multiprocessing pipe each
    socket  forked processes connecting to a Unix-domain listening socket
    thread  threads, one in-process queue each

The aggregation and worker logic are identical across deployments; only the
transport and the spawning primitive change.
"""
import logging
import multiprocessing
import os
import shutil
import sys
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor, wait

from aggregator import Aggregator
from errors import TransportFailure
from geometry import BoundingRegion, Polygon
from monte_carlo import make_base_seed, partition, run_worker, worker_seed
from transport import UnixSocketListener, pipe_channel, queue_channel

logger = logging.getLogger(__name__)


def _process_worker(polygon, region, share, seed, transport, verbose):
    try:
        run_worker(polygon, region, share, seed, transport, verbose)
    except TransportFailure as e:
        logger.error(f"Worker {share.worker_id} could not report: {e}")
        sys.exit(1)


def _socket_worker(path, polygon, region, share, seed, verbose):
    try:
        transport = UnixSocketListener.connect(path, share.worker_id)
        run_worker(polygon, region, share, seed, transport, verbose)
    except TransportFailure as e:
        logger.error(f"Worker {share.worker_id} could not report: {e}")
        sys.exit(1)


def _join(processes, timeout):
    deadline = time.monotonic() + timeout
    for p in processes:
        p.join(max(0.0, deadline - time.monotonic()))
        if p.is_alive():
            logger.warning(f"Terminating {p.name}: still running after {timeout:.1f}s")
            p.terminate()
            p.join()
        elif p.exitcode != 0:
            logger.warning(f"{p.name} exited with code {p.exitcode}")


def run_pipes(polygon, region, shares, base_seed, config, aggregator):
    processes = []
    readers = []
    try:
        for share in shares:
            writer, reader = pipe_channel(share.worker_id)
            p = multiprocessing.Process(
                target=_process_worker,
                args=(polygon, region, share, worker_seed(base_seed, share.worker_id), writer, config.verbose),
                name=f"worker-{share.worker_id}",
            )
            p.start()
            # Only the child may hold the write end, or EOF never arrives
            writer.close()
            processes.append(p)
            readers.append(reader)
        return aggregator.drain(readers)
    finally:
        _join(processes, config.timeout)


def run_sockets(polygon, region, shares, base_seed, config, aggregator):
    socket_dir = tempfile.mkdtemp(prefix="polyarea-")
    path = os.path.join(socket_dir, "workers.sock")
    processes = []
    try:
        with UnixSocketListener(path, backlog=len(shares)) as listener:
            for share in shares:
                p = multiprocessing.Process(
                    target=_socket_worker,
                    args=(path, polygon, region, share, worker_seed(base_seed, share.worker_id), config.verbose),
                    name=f"worker-{share.worker_id}",
                )
                p.start()
                processes.append(p)
            readers = listener.accept(len(shares), config.timeout)
            return aggregator.drain(readers)
    finally:
        _join(processes, config.timeout)
        shutil.rmtree(socket_dir, ignore_errors=True)


def run_threads(polygon, region, shares, base_seed, config, aggregator):
    executor = ThreadPoolExecutor(max_workers=len(shares))
    futures = {}
    readers = []
    try:
        for share in shares:
            writer, reader = queue_channel(share.worker_id)
            future = executor.submit(run_worker, polygon, region, share,
                                     worker_seed(base_seed, share.worker_id), writer, config.verbose)
            futures[future] = share.worker_id
            readers.append(reader)
        estimate = aggregator.drain(readers)
    finally:
        done, not_done = wait(futures, timeout=config.timeout)
        for future in not_done:
            logger.warning(f"Worker {futures[future]} thread still running after {config.timeout:.1f}s")
        executor.shutdown(wait=False)

    for future in done:
        error = future.exception()
        if error is not None:
            logger.warning(f"Worker {futures[future]} failed: {error}")
    return estimate


DEPLOYMENTS = {
    "pipe": run_pipes,
    "socket": run_sockets,
    "thread": run_threads,
}


def estimate_area(polygon, config, on_progress=None, on_message=None):
    """Run the configured deployment and return the merged Estimate.

    Raises PartialCoverage when some share went unreported, unless
    config.allow_partial is set, in which case the returned estimate has
    partial == True.
    """
    if not isinstance(polygon, Polygon):
        polygon = Polygon(polygon)
    region = config.region if config.region is not None else BoundingRegion.covering(polygon)
    shares = partition(config.points, config.workers, config.spread_remainder)
    base_seed = config.seed if config.seed is not None else make_base_seed()

    logger.info(f"Estimating area with {config.workers} {config.backend} workers, "
                f"{config.points} points over {tuple(region)}")
    for share in shares:
        logger.debug(f"Share {share.worker_id}: [{share.start}, {share.stop})")

    aggregator = Aggregator(config.points, region, [s.worker_id for s in shares],
                            timeout=config.timeout, on_progress=on_progress,
                            on_message=on_message, keep_points=config.verbose)
    estimate = DEPLOYMENTS[config.backend](polygon, region, shares, base_seed, config, aggregator)

    if not config.allow_partial:
        estimate.check()
    return estimate
