"""Built-in matrix-vector sample for the ``demo`` command.

``gemv_tiled`` computes ``y = A @ x`` in column tiles of ``TS`` elements,
``ROWS`` rows per work-item. The host-side numpy implementation mirrors what
the OpenCL source below would do on a device, so the sample can be tuned
anywhere through ``CallableBackend``.
"""

from __future__ import annotations

from collections.abc import Mapping

import numpy as np

from .backend import CallableBackend, LaunchRequest
from .tuner import Tuner

GEMV_REFERENCE_SOURCE = """
__kernel void gemv_reference(const int m, const int n,
                             const __global double* a, const __global double* x,
                             __global double* y) {
  const int row = get_global_id(0);
  double acc = 0.0;
  for (int k = 0; k < n; ++k) { acc += a[row * n + k] * x[k]; }
  y[row] = acc;
}
"""

GEMV_TILED_SOURCE = """
__kernel void gemv_tiled(const int m, const int n,
                         const __global double* a, const __global double* x,
                         __global double* y) {
  __local double xs[TS];
  const int base = get_group_id(0) * ROWS;
  double acc[ROWS];
  for (int r = 0; r < ROWS; ++r) { acc[r] = 0.0; }
  for (int t = 0; t < n; t += TS) {
    for (int k = get_local_id(0); k < TS; k += get_local_size(0)) { xs[k] = x[t + k]; }
    barrier(CLK_LOCAL_MEM_FENCE);
    for (int r = 0; r < ROWS; ++r) {
      for (int k = 0; k < TS; ++k) { acc[r] += a[(base + r) * n + t + k] * xs[k]; }
    }
    barrier(CLK_LOCAL_MEM_FENCE);
  }
  for (int r = 0; r < ROWS; ++r) { y[base + r] = acc[r]; }
}
"""


def gemv_reference(request: LaunchRequest, m: int, n: int, a, x, y) -> None:
    y[:] = a @ x


def gemv_tiled(request: LaunchRequest, m: int, n: int, a, x, y) -> None:
    ts = request.defines["TS"]
    rows = request.defines["ROWS"]
    for base in range(0, m, rows):
        block = slice(base, min(base + rows, m))
        for start in range(0, n, ts):
            tile = slice(start, min(start + ts, n))
            y[block] += a[block, tile] @ x[tile]


def gemv_local_memory(defines: Mapping[str, int]) -> int:
    return 8 * defines.get("TS", 0)


def build_gemv_tuner(
    m: int = 256,
    n: int = 512,
    seed: int | None = None,
    suppress_output: bool = False,
) -> Tuner:
    """Tuner with the reference and tiled GEMV kernels registered."""
    backend = CallableBackend()
    backend.register("gemv_reference", gemv_reference)
    backend.register("gemv_tiled", gemv_tiled, local_memory=gemv_local_memory)

    tuner = Tuner(backend=backend, seed=seed, suppress_output=suppress_output)
    tuner.set_reference(GEMV_REFERENCE_SOURCE, "gemv_reference", (m,), (1,))

    kernel_id = tuner.add_kernel(GEMV_TILED_SOURCE, "gemv_tiled", (m,), (1,))
    tuner.add_parameter(kernel_id, "TS", [16, 32, 64, 128])
    tuner.add_parameter(kernel_id, "ROWS", [1, 2, 4, 8, 16])
    tuner.add_constraint(kernel_id, lambda v: v[0] * v[1] <= 1024, ["TS", "ROWS"])
    tuner.div_global_size(kernel_id, ("ROWS",))
    tuner.set_local_memory_usage(kernel_id, lambda v: 8 * v[0], ["TS"])

    rng = np.random.default_rng(seed)
    tuner.add_argument_scalar(m)
    tuner.add_argument_scalar(n)
    tuner.add_argument_input(rng.standard_normal((m, n)))
    tuner.add_argument_input(rng.standard_normal(n))
    tuner.add_argument_output(np.zeros(m))
    return tuner
