import time

import numba
import numpy as np
from numba import jit, prange

from julia_errors import AllocationError
from julia_kernel import pixel_value


# prange splits the tiles across all CPU cores; each tile writes only its own pixels
@jit(nopython=True, parallel=True)
def render_tiles(output, width, height, block_x, block_y, grid_x, grid_y, max_iter, c_real, c_imag):
    for tile in prange(grid_x * grid_y):
        x0 = (tile % grid_x) * block_x
        y0 = (tile // grid_x) * block_y
        for ty in range(block_y):
            y = y0 + ty
            if y >= height:
                break
            for tx in range(block_x):
                x = x0 + tx
                if x >= width:
                    break
                output[y * width + x] = pixel_value(x, y, width, height, max_iter, c_real, c_imag)


class CpuBackend:
    """Multi-core fallback that runs the tile grid with numba instead of a GPU.

    The working buffer plays the part of device memory: the renderer writes
    into it and retrieve() copies it into the separate host buffer.
    """

    name = "cpu"

    def __init__(self, config, geometry):
        self.config = config
        self.geometry = geometry
        self.host = None
        self.work = None

    def allocate(self):
        self.host = _zeros("host", self.config.pixels)
        self.work = _zeros("working", self.config.pixels)

    def describe(self):
        print(f"Device: CPU ({numba.get_num_threads()} threads)")

    def dispatch(self):
        cfg = self.config
        (bx, by), (gx, gy) = self.geometry.block, self.geometry.grid
        start = time.perf_counter()
        render_tiles(self.work, cfg.width, cfg.height, bx, by, gx, gy,
                     cfg.max_iter, cfg.c_real, cfg.c_imag)
        return (time.perf_counter() - start) * 1000.0

    def retrieve(self):
        np.copyto(self.host, self.work)
        return self.host.reshape(self.config.height, self.config.width)

    def release(self):
        self.work = None
        self.host = None


def _zeros(what, nbytes):
    try:
        return np.zeros(nbytes, dtype=np.uint8)
    except MemoryError as e:
        raise AllocationError(what, nbytes, str(e)) from e
