class PolyAreaError(Exception):
    pass


class InvalidConfiguration(PolyAreaError):
    pass


class InvalidPolygon(PolyAreaError):
    pass


class TransportFailure(PolyAreaError):
    pass


class WorkerTimeout(PolyAreaError):
    def __init__(self, worker_id, timeout):
        super().__init__(f"worker {worker_id} sent nothing for {timeout:.1f}s")
        self.worker_id = worker_id
        self.timeout = timeout


class PartialCoverage(PolyAreaError):
    """Raised when the workers' reports do not cover every sample point.

    The partial estimate is attached so callers can still show it,
    marked as partial.
    """

    def __init__(self, estimate):
        super().__init__(
            f"processed {estimate.total_processed} of {estimate.total_points} points; "
            f"missing workers: {list(estimate.missing_workers)}"
        )
        self.estimate = estimate

    @property
    def missing_workers(self):
        return self.estimate.missing_workers
