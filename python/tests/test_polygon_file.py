import pytest

from errors import InvalidPolygon
from geometry import Point
from polygon_file import ResultsWriter, parse_polygon, read_polygon
from transport import PartialResult, PointEvent


def test_read_polygon(polygon_file):
    polygon = read_polygon(polygon_file)
    assert len(polygon) == 4
    assert polygon[1] == Point(2.0, 0.0)


def test_parse_skips_noise():
    polygon = parse_polygon([
        "# triangle\n",
        "0 0\n",
        "\n",
        "garbage\n",
        "2.5 0   # trailing comment\n",
        "1\n",
        "0 2.5 extra\n",
    ])
    assert list(polygon) == [Point(0, 0), Point(2.5, 0), Point(0, 2.5)]


def test_too_few_vertices():
    with pytest.raises(InvalidPolygon):
        parse_polygon(["0 0\n", "1 1\n", "oops\n"])


def test_missing_file(tmp_path):
    with pytest.raises(InvalidPolygon):
        read_polygon(str(tmp_path / "nope.txt"))


def test_results_writer(tmp_path):
    path = tmp_path / "results.txt"
    path.write_text("stale\n")
    with ResultsWriter(str(path)) as writer:
        writer.write(PointEvent(0, 0.5, 0.5))
        writer.write(PartialResult(0, 10, 1))
    assert path.read_text() == "0;0.500000;0.500000\n0;10;1\n"
