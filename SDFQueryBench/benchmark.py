"""
Benchmark Scanner
=================

This module implements the grid scan that compares a candidate SDF with a
reference distance engine. Every pixel of a square image is mapped onto the
sampling plane, both engines are timed at that position and the timings are
accumulated into a histogram over the candidate's signed distance.

The scan stops after the first completed row in which the largest
disagreement between both engines exceeds the tolerance. Rows that were not
visited keep their initial value of zero in the timing buffers, which shows
where the divergence was first detected.

Functions
---------
bucket_index
    Histogram bucket of a signed distance.
accumulate
    Add one sample to the running statistics.
scan
    Run the full grid scan.
report
    Log the results of a scan.
random_sample_benchmark
    Time engines on uniformly distributed samples and compute their RMSE.
"""

from dataclasses import dataclass, field
import logging
import math
import time
from typing import Optional

import numpy as np

from SDFQueryBench.engines import DistanceEngine
from SDFQueryBench.sampling import (
    DEFAULT_DEPTH,
    BoundingVolume,
    SamplingPlane,
    pixel_coordinates,
)
import SDFQueryBench

logger = logging.getLogger(SDFQueryBench.__name__)

#: Index of the candidate (method A) in per-method arrays.
CANDIDATE = 0
#: Index of the reference (method B) in per-method arrays.
REFERENCE = 1

DEFAULT_TOLERANCE = 1e-5
DEFAULT_N_BUCKETS = 40


@dataclass
class BenchmarkConfig:
    """Settings of a benchmark run, see ``sdf-query-time --help``."""

    depth: float = DEFAULT_DEPTH
    tolerance: float = DEFAULT_TOLERANCE
    n_buckets: int = DEFAULT_N_BUCKETS
    per_query_repeats: int = 1
    reference: str = "igl"
    output_prefix: str = "time"
    color_min: float = 0.0
    color_max: Optional[float] = None
    random_samples: int = 0
    histogram: Optional[str] = None
    normalize: bool = True
    seed: int = 0

    @classmethod
    def from_args(cls, args):
        return cls(
            depth=args.depth,
            tolerance=args.tolerance,
            per_query_repeats=args.repeats,
            reference=args.reference,
            output_prefix=args.output_prefix,
            color_min=args.color_min,
            color_max=args.color_max,
            random_samples=args.random_samples,
            histogram=args.histogram,
            normalize=not args.no_normalize,
            seed=args.seed,
        )


@dataclass
class TimingInterval:
    min: float = math.inf
    max: float = 0.0

    def update(self, value):
        self.min = min(self.min, value)
        self.max = max(self.max, value)


@dataclass
class SampleResult:
    """Timings in microseconds and distances of both engines at one pixel."""

    time_candidate: float
    time_reference: float
    dist_candidate: float
    dist_reference: float
    bucket: int

    @property
    def error(self) -> float:
        return abs(self.dist_candidate - self.dist_reference)


@dataclass
class RunningStats:
    n_buckets: int = DEFAULT_N_BUCKETS
    timing: list = field(default_factory=lambda: [TimingInterval(), TimingInterval()])
    accumulated_time: Optional[np.ndarray] = None
    count: Optional[np.ndarray] = None
    max_error: float = 0.0
    samples: int = 0
    rows_completed: int = 0

    def __post_init__(self):
        if self.accumulated_time is None:
            self.accumulated_time = np.zeros((2, self.n_buckets), dtype=np.float64)
        if self.count is None:
            self.count = np.zeros((2, self.n_buckets), dtype=np.int64)

    def bucket_mean_times(self, method=CANDIDATE) -> list:
        """Mean time per bucket, ``None`` for buckets without samples."""
        return [
            float(acc / n) if n > 0 else None
            for acc, n in zip(self.accumulated_time[method], self.count[method])
        ]

    def bucket_label(self, bucket) -> str:
        half = self.n_buckets // 2
        return f"{(bucket - half) * 100 // half}%"


@dataclass
class ScanResult:
    stats: RunningStats
    candidate_times: np.ndarray
    reference_times: np.ndarray
    plane: SamplingPlane
    aborted: bool = False

    @property
    def max_error(self) -> float:
        return self.stats.max_error

    @property
    def image_width(self) -> int:
        return self.candidate_times.shape[0]


def bucket_index(distance, inv_diagonal, n_buckets=DEFAULT_N_BUCKETS) -> int:
    """Histogram bucket of a signed distance.

    The distance is normalized by the plane diagonal and ``[-1, 1]`` is
    mapped onto ``[0, n_buckets]``, so the middle bucket holds samples on
    the surface and each bucket spans ``2 / n_buckets`` of the diagonal.
    Values outside of the range end up in the first or last bucket.
    """
    if math.isnan(distance):
        raise ValueError("Cannot bucket a NaN distance")
    value = (distance * inv_diagonal + 1.0) * (n_buckets / 2)
    if value <= 0.0:
        return 0
    if value >= n_buckets - 1:
        return n_buckets - 1
    # round half away from zero, value is positive here
    return int(math.floor(value + 0.5))


def time_query(engine: DistanceEngine, position, repeats=1):
    """Query ``engine`` ``repeats`` times and return the last distance and
    the mean time per query in microseconds."""
    start = time.perf_counter()
    for _ in range(repeats):
        distance = engine.distance(position)
    elapsed = (time.perf_counter() - start) * 1.0e6 / repeats
    return distance, elapsed


def sample_pixel(
    candidate: DistanceEngine,
    reference: DistanceEngine,
    position,
    inv_diagonal,
    n_buckets=DEFAULT_N_BUCKETS,
    repeats=1,
) -> SampleResult:
    dist_candidate, time_candidate = time_query(candidate, position, repeats)
    dist_reference, time_reference = time_query(reference, position, repeats)
    return SampleResult(
        time_candidate=time_candidate,
        time_reference=time_reference,
        dist_candidate=dist_candidate,
        # the reference may be unsigned
        dist_reference=abs(dist_reference),
        bucket=bucket_index(dist_candidate, inv_diagonal, n_buckets),
    )


def accumulate(stats: RunningStats, sample: SampleResult) -> RunningStats:
    """Add a single sample to the running statistics and return them."""
    for method, elapsed in (
        (CANDIDATE, sample.time_candidate),
        (REFERENCE, sample.time_reference),
    ):
        stats.accumulated_time[method, sample.bucket] += elapsed
        stats.count[method, sample.bucket] += 1
        stats.timing[method].update(elapsed)
    stats.max_error = max(stats.max_error, sample.error)
    stats.samples += 1
    return stats


def scan(
    candidate: DistanceEngine,
    reference: DistanceEngine,
    plane: SamplingPlane,
    image_width: int,
    tolerance=DEFAULT_TOLERANCE,
    n_buckets=DEFAULT_N_BUCKETS,
    per_query_repeats=1,
) -> ScanResult:
    """Scan the sampling plane pixel by pixel.

    Rows are traversed top to bottom, columns left to right. After every row
    the largest error seen so far is compared with ``tolerance``; once it is
    exceeded, the scan stops and all following rows stay zero.

    Exceptions raised by the engines are not caught.

    Parameters
    ----------
    candidate : DistanceEngine
        Evaluator under test (method A), returns signed distances.
    reference : DistanceEngine
        Ground truth (method B); its distances are compared as absolute
        values.
    plane : SamplingPlane
        Plane the pixel grid is laid on.
    image_width : int
        Number of pixels along both image axes.
    tolerance : float, default 1e-5
        Maximum absolute disagreement before the scan is aborted.
    n_buckets : int, default 40
        Number of histogram buckets.
    per_query_repeats : int, default 1
        Every query is repeated this often, the time is averaged.

    Returns
    -------
    ScanResult
    """
    if image_width < 1:
        raise ValueError(f"Image width must be positive, got {image_width}")
    if per_query_repeats < 1:
        raise ValueError(f"Repeats must be positive, got {per_query_repeats}")

    candidate_times = np.zeros((image_width, image_width), dtype=np.float64)
    reference_times = np.zeros((image_width, image_width), dtype=np.float64)
    stats = RunningStats(n_buckets=n_buckets)
    diagonal = plane.diagonal
    inv_diagonal = 1.0 / diagonal if diagonal > 0 else 0.0
    aborted = False

    logger.debug(
        f"Scanning {image_width}x{image_width} samples with "
        f"{type(candidate).__name__} and {type(reference).__name__}"
    )
    for j in range(image_width):
        for i in range(image_width):
            tx, ty = pixel_coordinates(i, j, image_width)
            sample = sample_pixel(
                candidate,
                reference,
                plane.position(tx, ty),
                inv_diagonal,
                n_buckets=n_buckets,
                repeats=per_query_repeats,
            )
            candidate_times[j, i] = sample.time_candidate
            reference_times[j, i] = sample.time_reference
            stats = accumulate(stats, sample)
        stats.rows_completed += 1

        if stats.max_error > tolerance:
            aborted = True
            logger.warning(
                f"Max error {stats.max_error} exceeds tolerance {tolerance} "
                f"in row {j}, stopping after {stats.rows_completed} of "
                f"{image_width} rows"
            )
            break

    return ScanResult(
        stats=stats,
        candidate_times=candidate_times,
        reference_times=reference_times,
        plane=plane,
        aborted=aborted,
    )


def report(result: ScanResult, candidate_name="Our method", reference_name="Reference"):
    stats = result.stats
    logger.info(f"Max error: {stats.max_error}")
    for method, name in ((CANDIDATE, candidate_name), (REFERENCE, reference_name)):
        interval = stats.timing[method]
        logger.info(f"{name} time interval ({interval.min},{interval.max})")

    for method, name in ((CANDIDATE, candidate_name), (REFERENCE, reference_name)):
        logger.debug(f"{name} mean time per distance bucket:")
        for bucket, mean_time in enumerate(stats.bucket_mean_times(method)):
            label = stats.bucket_label(bucket)
            if mean_time is None:
                logger.debug(f"{label}: no samples")
            else:
                logger.debug(f"{label}: {mean_time}")


@dataclass
class RandomSampleReport:
    us_per_query: float
    rmse: float


def random_samples(volume: BoundingVolume, n_samples, seed=0) -> np.ndarray:
    """Uniform samples inside ``volume``, shrunk slightly so no sample lies
    exactly on its border."""
    rng = np.random.default_rng(seed)
    size = np.maximum(volume.size - 1e-5, 0.0)
    return volume.center + (rng.random((n_samples, 3)) - 0.5) * size


def random_sample_benchmark(
    candidate: DistanceEngine,
    references: dict,
    volume: BoundingVolume,
    n_samples=100000,
    seed=0,
) -> dict:
    """Time engines on random samples and compare them with the candidate.

    Every engine is queried point by point over the same samples. The root
    mean square error is computed on absolute distances since the reference
    engines may be unsigned.

    Returns
    -------
    dict
        Maps ``"candidate"`` and every key of ``references`` to a
        :class:`RandomSampleReport`.
    """
    if n_samples < 1:
        raise ValueError(f"Number of samples must be positive, got {n_samples}")
    samples = random_samples(volume, n_samples, seed=seed)
    engines = {"candidate": candidate, **references}

    distances = {}
    timings = {}
    for name, engine in engines.items():
        values = np.empty(n_samples, dtype=np.float64)
        start = time.perf_counter()
        for s, point in enumerate(samples):
            values[s] = engine.distance(point)
        timings[name] = (time.perf_counter() - start) * 1.0e6 / n_samples
        distances[name] = values
        logger.info(f"{name} us per query: {timings[name]}")

    expected = np.abs(distances["candidate"])
    results = {}
    for name in engines:
        rmse = float(np.sqrt(np.mean((np.abs(distances[name]) - expected) ** 2)))
        results[name] = RandomSampleReport(us_per_query=timings[name], rmse=rmse)
        if name != "candidate":
            logger.info(f"{name} RMSE: {rmse}")
    return results
