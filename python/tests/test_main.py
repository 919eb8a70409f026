import sys

import pytest

import main


def run(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["main.py", *args])
    main.main()


def test_usage(monkeypatch, capsys):
    with pytest.raises(SystemExit) as info:
        run(monkeypatch, "only-one")
    assert info.value.code == 1
    assert "Usage" in capsys.readouterr().out


def test_normal_run(monkeypatch, capsys, tmp_path, polygon_file):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("POLYAREA_SEED", "7")
    run(monkeypatch, polygon_file, "2", "1000", "normal", "thread")
    out = capsys.readouterr().out
    assert "Progress: 100%" in out
    assert "Estimated area: 4.000000 square units" in out
    lines = (tmp_path / "results.txt").read_text().splitlines()
    assert sorted(lines) == ["0;500;500", "1;500;500"]


def test_verbose_run_with_image(monkeypatch, capsys, tmp_path, polygon_file):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("POLYAREA_RESULTS", "")
    image = tmp_path / "points.png"
    run(monkeypatch, polygon_file, "2", "50", "verbose", "thread", str(image))
    out = capsys.readouterr().out
    assert "Progress" not in out
    assert out.count(";") == 2 * (50 + 2)
    assert image.exists()
    assert not (tmp_path / "results.txt").exists()


def test_bad_counts(monkeypatch, capsys, polygon_file):
    with pytest.raises(SystemExit) as info:
        run(monkeypatch, polygon_file, "two", "1000", "normal")
    assert info.value.code == 1
    with pytest.raises(SystemExit):
        run(monkeypatch, polygon_file, "0", "1000", "normal")
    assert "Invalid configuration" in capsys.readouterr().out


def test_bad_polygon(monkeypatch, capsys, tmp_path):
    path = tmp_path / "line.txt"
    path.write_text("0 0\n1 1\n")
    with pytest.raises(SystemExit) as info:
        run(monkeypatch, str(path), "2", "100", "normal", "thread")
    assert info.value.code == 1
    assert "Invalid polygon" in capsys.readouterr().out
