import os
import shutil
import tempfile

import pytest

from geometry import BoundingRegion, Polygon


@pytest.fixture
def unit_square():
    return Polygon([(0, 0), (1, 0), (1, 1), (0, 1)])


@pytest.fixture
def square2():
    return Polygon([(0, 0), (2, 0), (2, 2), (0, 2)])


@pytest.fixture
def triangle():
    return Polygon([(0, 0), (2, 0), (0, 2)])


@pytest.fixture
def l_shape():
    return Polygon([(0, 0), (2, 0), (2, 1), (1, 1), (1, 2), (0, 2)])


@pytest.fixture
def region2():
    return BoundingRegion.create(0, 2, 0, 2)


@pytest.fixture
def socket_dir():
    # Unix socket paths are length-limited, keep them short
    path = tempfile.mkdtemp(prefix="pa-")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def polygon_file(tmp_path):
    path = tmp_path / "square.txt"
    path.write_text("0 0\n2 0\n2 2\n0 2\n")
    return str(path)
