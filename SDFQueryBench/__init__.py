"""
SDFQueryBench - Timing and Accuracy Harness for Signed Distance Queries
=======================================================================

SDFQueryBench compares an approximate signed distance function (SDF) against
exact closest-point queries on a triangle mesh. A regular grid of samples is
placed on a planar slice through the SDF's sample volume, both evaluators are
timed at every sample and the worst disagreement between them is tracked.
The per-sample timings are written out as false-color images.

Key Components
--------------

SDF Representations
    - ``SDFQueryBench.SDF``: Abstract base class, grid and mesh based SDFs
    - ``SDFQueryBench.sdf_primitives``: Analytic primitives (sphere, plane, ...)

Reference Engines
    - ``SDFQueryBench.engines``: Polymorphic distance query engines
      (libigl AABB tree, trimesh proximity query, SDF wrapper)
    - ``SDFQueryBench.mesh``: Mesh loading and SDF grid export

Benchmarking
    - ``SDFQueryBench.sampling``: Sampling plane and pixel positions
    - ``SDFQueryBench.benchmark``: Grid scan, statistics and RMSE benchmark

Visualization
    - ``SDFQueryBench.plotting``: Color palette, pixel packing and images

Examples
--------
Scan a slice of a grid SDF against the libigl reference::

    from SDFQueryBench.SDF import load_sdf
    from SDFQueryBench.mesh import load_mesh
    from SDFQueryBench.engines import SDFEngine, build_engine
    from SDFQueryBench.sampling import BoundingVolume, plane_from_volume
    from SDFQueryBench.benchmark import scan, report

    sdf = load_sdf("bunny_sdf.npz")
    mesh = load_mesh("bunny.ply")
    plane = plane_from_volume(BoundingVolume.from_bounds(sdf._get_domain_bounds()))
    result = scan(SDFEngine(sdf), build_engine("igl", mesh), plane, 256)
    report(result)

Or from the command line::

    sdf-query-time bunny_sdf.npz bunny.ply 256
"""

import SDFQueryBench.utils

SDFQueryBench.utils.configure_logging()

__version__ = "0.1.0"
