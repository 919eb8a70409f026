import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from errors import InvalidConfiguration
from geometry import BoundingRegion

DEFAULT_REGION = BoundingRegion(0.0, 2.0, 0.0, 2.0)
DEFAULT_RESULTS_PATH = "results.txt"
BACKENDS = ("pipe", "socket", "thread")


class Mode(Enum):
    NORMAL = "normal"
    VERBOSE = "verbose"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "verboso":
            return cls.VERBOSE
        try:
            return cls(name)
        except ValueError:
            raise InvalidConfiguration(f"Unknown mode: {value!r} (expected normal or verbose)") from None


@dataclass(frozen=True)
class Config:
    workers: int
    points: int
    mode: Mode = Mode.NORMAL
    backend: str = "pipe"
    # None samples the polygon's own bounding box
    region: Optional[BoundingRegion] = DEFAULT_REGION
    seed: Optional[int] = None
    timeout: float = 30.0
    results_path: Optional[str] = DEFAULT_RESULTS_PATH
    spread_remainder: bool = True
    allow_partial: bool = False

    def __post_init__(self):
        for name in ("workers", "points"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InvalidConfiguration(f"{name} must be a positive integer, got {value!r}")
        object.__setattr__(self, "mode", Mode.parse(self.mode))
        if self.backend not in BACKENDS:
            raise InvalidConfiguration(f"Unknown backend: {self.backend!r} (expected one of {', '.join(BACKENDS)})")
        if self.region is not None:
            object.__setattr__(self, "region", BoundingRegion.create(*self.region))
        if self.timeout is None or self.timeout <= 0:
            raise InvalidConfiguration(f"timeout must be positive, got {self.timeout!r}")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
            raise InvalidConfiguration(f"seed must be an integer, got {self.seed!r}")

    @property
    def verbose(self):
        return self.mode is Mode.VERBOSE

    def with_env(self, environ=None):
        """Apply POLYAREA_SEED, POLYAREA_TIMEOUT and POLYAREA_RESULTS overrides."""
        environ = os.environ if environ is None else environ
        changes = {}
        try:
            if environ.get("POLYAREA_SEED"):
                changes["seed"] = int(environ["POLYAREA_SEED"], 0)
            if environ.get("POLYAREA_TIMEOUT"):
                changes["timeout"] = float(environ["POLYAREA_TIMEOUT"])
        except ValueError as e:
            raise InvalidConfiguration(f"Bad environment override: {e}") from None
        if "POLYAREA_RESULTS" in environ:
            changes["results_path"] = environ["POLYAREA_RESULTS"] or None
        return replace(self, **changes) if changes else self
