#!/usr/bin/env python3
import logging
import os
import sys
import time

from config import BACKENDS, Config
from errors import InvalidConfiguration, InvalidPolygon, PartialCoverage
from polygon_file import ResultsWriter, read_polygon
from render import render_points
from runner import estimate_area
from transport import PartialResult, encode


def configure_logging():
    level = os.environ.get("POLYAREA_LOG_LEVEL", "WARNING").upper()
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter('%(levelname)s %(message)s'))
        root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.WARNING))


def print_estimate(estimate, polygon):
    label = "PARTIAL estimated area" if estimate.partial else "Estimated area"
    print(f"{label}: {estimate.area:.6f} square units")
    print(f"Points processed: {estimate.total_processed}/{estimate.total_points}")
    print(f"Points inside polygon: {estimate.total_inside}")
    exact = polygon.area()
    print(f"Polygon area (shoelace): {exact:.6f}, error: {exact - estimate.area:.6f}")
    if estimate.partial:
        print(f"Missing workers: {', '.join(str(w) for w in estimate.missing_workers) or 'none'}")


def main():
    if len(sys.argv) not in (5, 6, 7):
        print(f"Usage: {sys.argv[0]} <polygon_file> <workers> <points> <mode> [backend] [image]")
        print("Modes: normal, verbose")
        print(f"Backends: {', '.join(BACKENDS)} (default: pipe)")
        sys.exit(1)

    polygon_path = sys.argv[1]
    backend = sys.argv[5] if len(sys.argv) > 5 else "pipe"
    image_path = sys.argv[6] if len(sys.argv) > 6 else None

    configure_logging()

    try:
        config = Config(
            workers=int(sys.argv[2]),
            points=int(sys.argv[3]),
            mode=sys.argv[4],
            backend=backend,
            allow_partial=True,
        ).with_env()
    except ValueError:
        print("Workers and points must be integers")
        sys.exit(1)
    except InvalidConfiguration as e:
        print(f"Invalid configuration: {e}")
        sys.exit(1)

    # Load polygon
    start_time = time.time()
    try:
        polygon = read_polygon(polygon_path)
    except InvalidPolygon as e:
        print(f"Invalid polygon: {e}")
        sys.exit(1)
    load_time = time.time() - start_time
    print(f"Polygon loading took {load_time * 1000:.2f}ms ({len(polygon)} vertices)")

    writer = ResultsWriter(config.results_path) if config.results_path else None

    def on_message(message):
        if writer is not None:
            writer.write(message)
        if config.verbose or isinstance(message, PartialResult):
            print(encode(message), end="")

    def on_progress(percent):
        if not config.verbose:
            print(f"Progress: {percent}%")

    # Estimate
    start_time = time.time()
    try:
        estimate = estimate_area(polygon, config, on_progress=on_progress, on_message=on_message)
    finally:
        if writer is not None:
            writer.close()
    estimate_time = time.time() - start_time
    print(f"Estimation took {estimate_time * 1000:.2f}ms")

    print_estimate(estimate, polygon)

    if image_path is not None:
        start_time = time.time()
        render_points(polygon, config.region, estimate.points, image_path)
        print(f"Image saving took {(time.time() - start_time) * 1000:.2f}ms")

    try:
        estimate.check()
    except PartialCoverage:
        sys.exit(2)


if __name__ == "__main__":
    main()
