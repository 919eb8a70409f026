import logging

from errors import InvalidPolygon
from geometry import Polygon
from transport import encode

logger = logging.getLogger(__name__)


def parse_polygon(lines):
    points = []
    for number, line in enumerate(lines, 1):
        text = line.split("#", 1)[0].strip()
        if not text:
            continue
        fields = text.split()
        try:
            x, y = float(fields[0]), float(fields[1])
        except (IndexError, ValueError):
            logger.debug(f"Skipping line {number}: {line.rstrip()!r}")
            continue
        points.append((x, y))

    if len(points) < 3:
        raise InvalidPolygon(f"Need at least 3 vertices, found {len(points)}")
    return Polygon(points)


def read_polygon(path):
    try:
        with open(path) as f:
            return parse_polygon(f)
    except OSError as e:
        raise InvalidPolygon(f"Cannot read polygon file {path}: {e}") from e


class ResultsWriter:
    """Appends every record received from the workers to a results file."""

    def __init__(self, path):
        self.path = path
        self._file = open(path, "w")

    def write(self, message):
        self._file.write(encode(message))
        self._file.flush()

    def close(self):
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
