#!/usr/bin/env python3
"""
Measure the query time and the error of an SDF against exact mesh distances.

Usage:
    sdf-query-time exact_sdf.npz model.ply 256

Or:
    python -m SDFQueryBench exact_sdf.npz model.ply 256
"""

import argparse
import logging
import os
import sys

from SDFQueryBench.SDF import load_sdf, normalize_mesh_to_unit_cube
from SDFQueryBench.benchmark import (
    BenchmarkConfig,
    random_sample_benchmark,
    report,
    scan,
)
from SDFQueryBench.engines import SDFEngine, build_engine, list_available_engines
from SDFQueryBench.mesh import load_mesh
from SDFQueryBench.plotting import plot_histogram, write_images
from SDFQueryBench.sampling import DEFAULT_DEPTH, BoundingVolume, plane_from_volume
from SDFQueryBench.utils import configure_logging
import SDFQueryBench

logger = logging.getLogger(SDFQueryBench.__name__)


class _UsageExitParser(argparse.ArgumentParser):
    """Prints the usage and exits with status 0 on invalid arguments, the
    same way ``--help`` does."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(0, f"{self.prog}: error: {message}\n")


def _positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid positive integer: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"invalid positive integer: {value!r}")
    return number


def _non_negative_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid non-negative integer: {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"invalid non-negative integer: {value!r}")
    return number


def build_parser():
    parser = _UsageExitParser(
        prog="sdf-query-time",
        description="Calculate the error of a sdf",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a 256x256 slice against the libigl AABB tree
  sdf-query-time bunny_sdf.npz bunny.ply 256

  # Use trimesh as reference, average 100 repetitions per query
  sdf-query-time bunny_sdf.npz bunny.ply 128 --reference trimesh --repeats 100

  # Additionally time 100000 random queries and plot the histogram
  sdf-query-time bunny_sdf.npz bunny.ply 256 --random-samples 100000 \\
      --histogram histogram.png
        """,
    )

    parser.add_argument("exact_sdf_path", help="Exact sdf path (.npz grid or mesh)")
    parser.add_argument("model_path", help="Mesh model path")
    parser.add_argument("image_width", type=_positive_int, help="Image width")

    parser.add_argument(
        "--reference",
        choices=list_available_engines(),
        default="igl",
        help="Reference distance engine (default: igl)",
    )
    parser.add_argument(
        "--depth",
        type=float,
        default=DEFAULT_DEPTH,
        help=f"z coordinate of the sampling plane (default: {DEFAULT_DEPTH})",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=1e-5,
        help="Stop after the row in which the error exceeds this (default: 1e-5)",
    )
    parser.add_argument(
        "--repeats",
        type=_positive_int,
        default=1,
        help="Repetitions per query, the time is averaged (default: 1)",
    )
    parser.add_argument(
        "--output-prefix",
        default="time",
        help="Images are written to <prefix>1.png and <prefix>2.png (default: time)",
    )
    parser.add_argument(
        "--color-min",
        type=float,
        default=0.0,
        help="Time in us mapped to the first palette color (default: 0)",
    )
    parser.add_argument(
        "--color-max",
        type=float,
        default=None,
        help="Time in us mapped to the last palette color "
        "(default: slowest query of both methods)",
    )
    parser.add_argument(
        "--random-samples",
        type=_non_negative_int,
        default=0,
        help="Also time this many random queries and report the RMSE (default: 0)",
    )
    parser.add_argument(
        "--seed", type=int, default=0, help="Seed of the random samples (default: 0)"
    )
    parser.add_argument(
        "--histogram", default=None, help="Save a plot of the timing histogram here"
    )
    parser.add_argument(
        "--no-normalize",
        action="store_true",
        help="Do not scale the mesh to [-1, 1]^3 before building the engines",
    )
    parser.add_argument("--logfile", default=None, help="Also write the log here")
    parser.add_argument(
        "--verbose", action="store_true", help="Log the per bucket timings"
    )
    return parser


def run(exact_sdf_path, model_path, image_width, config: BenchmarkConfig):
    mesh = load_mesh(model_path)
    if config.normalize:
        mesh = normalize_mesh_to_unit_cube(mesh)

    exact_sdf = load_sdf(exact_sdf_path, scale=config.normalize)
    candidate = SDFEngine(exact_sdf)
    reference = build_engine(config.reference, mesh)

    volume = BoundingVolume.from_bounds(exact_sdf._get_domain_bounds())
    plane = plane_from_volume(volume, z=config.depth)

    result = scan(
        candidate,
        reference,
        plane,
        image_width,
        tolerance=config.tolerance,
        n_buckets=config.n_buckets,
        per_query_repeats=config.per_query_repeats,
    )
    report(result, reference_name=config.reference)

    write_images(
        result,
        prefix=config.output_prefix,
        min_interval=config.color_min,
        max_interval=config.color_max,
    )
    if config.histogram is not None:
        plot_histogram(
            result.stats,
            labels=("Our method", config.reference),
            filename=config.histogram,
        )

    if config.random_samples > 0:
        references = {config.reference: reference}
        for name in list_available_engines():
            if name not in references:
                references[name] = build_engine(name, mesh)
        random_sample_benchmark(
            candidate,
            references,
            volume,
            n_samples=config.random_samples,
            seed=config.seed,
        )
    return result


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO, logfile=args.logfile
    )

    for path in (args.exact_sdf_path, args.model_path):
        if not os.path.exists(path):
            logger.error(f"Error: File not found: {path}")
            sys.exit(1)

    run(
        args.exact_sdf_path,
        args.model_path,
        args.image_width,
        BenchmarkConfig.from_args(args),
    )


if __name__ == "__main__":
    main()
