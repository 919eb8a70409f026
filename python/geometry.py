import math
from enum import IntEnum
from typing import NamedTuple, Sequence

from errors import InvalidConfiguration, InvalidPolygon


class Point(NamedTuple):
    x: float
    y: float


class Orientation(IntEnum):
    COLLINEAR = 0
    CLOCKWISE = 1
    COUNTER_CLOCKWISE = 2


class BoundingRegion(NamedTuple):
    """Axis-aligned rectangle used for sampling and as the reference area."""
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    @classmethod
    def create(cls, x_min, x_max, y_min, y_max):
        region = cls(float(x_min), float(x_max), float(y_min), float(y_max))
        if not all(math.isfinite(v) for v in region):
            raise InvalidConfiguration(f"Bounding region must be finite: {region}")
        if region.x_min >= region.x_max or region.y_min >= region.y_max:
            raise InvalidConfiguration(f"Empty bounding region: {region}")
        return region

    @classmethod
    def covering(cls, polygon):
        """Bounding box of the polygon; a flat axis is widened to one unit."""
        xs = [p.x for p in polygon]
        ys = [p.y for p in polygon]
        x_min, x_max, y_min, y_max = min(xs), max(xs), min(ys), max(ys)
        if x_min == x_max:
            x_min, x_max = x_min - 0.5, x_max + 0.5
        if y_min == y_max:
            y_min, y_max = y_min - 0.5, y_max + 0.5
        return cls.create(x_min, x_max, y_min, y_max)

    def area(self) -> float:
        return (self.x_max - self.x_min) * (self.y_max - self.y_min)

    def contains(self, p: Point) -> bool:
        return self.x_min <= p.x <= self.x_max and self.y_min <= p.y <= self.y_max


def orientation(p: Point, q: Point, r: Point) -> Orientation:
    # Exact zero test: near-degenerate triples may land on either side
    val = (q.y - p.y) * (r.x - q.x) - (q.x - p.x) * (r.y - q.y)
    if val == 0:
        return Orientation.COLLINEAR
    return Orientation.CLOCKWISE if val > 0 else Orientation.COUNTER_CLOCKWISE


def on_segment(p: Point, q: Point, r: Point) -> bool:
    """True if q lies within the bounding box of segment pr.

    Only meaningful when p, q and r are already known to be collinear.
    """
    return (min(p.x, r.x) <= q.x <= max(p.x, r.x) and
            min(p.y, r.y) <= q.y <= max(p.y, r.y))


def segments_intersect(p1: Point, q1: Point, p2: Point, q2: Point) -> bool:
    o1 = orientation(p1, q1, p2)
    o2 = orientation(p1, q1, q2)
    o3 = orientation(p2, q2, p1)
    o4 = orientation(p2, q2, q1)

    if o1 != o2 and o3 != o4:
        return True

    # Collinear endpoint lying on the other segment
    if o1 == Orientation.COLLINEAR and on_segment(p1, p2, q1):
        return True
    if o2 == Orientation.COLLINEAR and on_segment(p1, q2, q1):
        return True
    if o3 == Orientation.COLLINEAR and on_segment(p2, p1, q2):
        return True
    if o4 == Orientation.COLLINEAR and on_segment(p2, q1, q2):
        return True

    return False


def is_inside(polygon: Sequence[Point], p: Point, far_x=None) -> bool:
    """Ray-casting membership test.

    Casts a horizontal ray from p to an auxiliary point beyond the polygon's
    right edge and counts edge crossings. A ray through a vertex counts once,
    for the edge whose other end lies above the ray. A point collinear with a
    crossed edge is decided by that edge alone, so boundary points count as
    inside.
    """
    n = len(polygon)
    if n < 3:
        return False

    if far_x is None:
        far_x = max(v.x for v in polygon) + 1.0
    extreme = Point(max(far_x, p.x + 1.0), p.y)

    count = 0
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        if segments_intersect(a, b, p, extreme):
            if orientation(a, p, b) == Orientation.COLLINEAR:
                return on_segment(a, p, b)
            # A vertex on the ray belongs to the edge that rises above it
            if a.y == p.y:
                if b.y > p.y:
                    count += 1
            elif b.y == p.y:
                if a.y > p.y:
                    count += 1
            else:
                count += 1

    return count % 2 == 1


def shoelace_area(polygon: Sequence[Point]) -> float:
    n = len(polygon)
    twice_area = 0.0
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        twice_area += a.x * b.y - b.x * a.y
    return abs(twice_area) / 2.0


class Polygon:
    """Immutable, implicitly closed vertex sequence.

    Simplicity is assumed, not verified.
    """

    def __init__(self, points):
        vertices = tuple(Point(float(x), float(y)) for x, y in points)
        if len(vertices) < 3:
            raise InvalidPolygon(f"Polygon needs at least 3 vertices, got {len(vertices)}")
        for v in vertices:
            if not (math.isfinite(v.x) and math.isfinite(v.y)):
                raise InvalidPolygon(f"Non-finite vertex {v}")
        self._vertices = vertices
        self._bounds = BoundingRegion(
            min(v.x for v in vertices), max(v.x for v in vertices),
            min(v.y for v in vertices), max(v.y for v in vertices),
        )

    @property
    def vertices(self):
        return self._vertices

    @property
    def far_x(self) -> float:
        return self._bounds.x_max + 1.0

    def bounds(self) -> BoundingRegion:
        # May be degenerate (zero width or height), unlike a sampling region
        return self._bounds

    def contains(self, p: Point) -> bool:
        return is_inside(self._vertices, p, self.far_x)

    def area(self) -> float:
        return shoelace_area(self._vertices)

    def __len__(self):
        return len(self._vertices)

    def __iter__(self):
        return iter(self._vertices)

    def __getitem__(self, index):
        return self._vertices[index]

    def __eq__(self, other):
        return isinstance(other, Polygon) and self._vertices == other._vertices

    def __hash__(self):
        return hash(self._vertices)

    def __repr__(self):
        return f"Polygon({list(self._vertices)!r})"
