from dataclasses import dataclass
from typing import Optional

# Reference run parameters
WIDTH, HEIGHT = 4096, 4096
MAX_ITER = 1000
C_REAL, C_IMAG = -0.7, 0.27015
BLOCK_SIZE = (16, 16)
TIMED_RUNS = 10
FLOPS_PER_ITERATION = 10
OUTPUT_FILE = "julia_set.pgm"

BACKENDS = ("cuda", "cpu")


@dataclass(frozen=True)
class JuliaConfig:
    """Everything a run needs, fixed before the first dispatch."""

    width: int = WIDTH
    height: int = HEIGHT
    max_iter: int = MAX_ITER
    c_real: float = C_REAL
    c_imag: float = C_IMAG
    block_size: tuple = BLOCK_SIZE
    timed_runs: int = TIMED_RUNS
    flops_per_iteration: int = FLOPS_PER_ITERATION
    output: str = OUTPUT_FILE
    legacy_header: bool = False
    backend: str = "cuda"
    fast_math: bool = True
    png: Optional[str] = None
    show: bool = False

    @property
    def pixels(self):
        return self.width * self.height

    def validate(self):
        for name in ("width", "height", "max_iter", "timed_runs"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if len(self.block_size) != 2 or any(b <= 0 for b in self.block_size):
            raise ValueError(f"block_size must be two positive integers, got {self.block_size!r}")
        if self.backend not in BACKENDS:
            raise ValueError(f"unknown backend {self.backend!r}, expected one of {BACKENDS}")
        return self


@dataclass(frozen=True)
class DispatchGeometry:
    block: tuple
    grid: tuple

    @property
    def tiles(self):
        return self.grid[0] * self.grid[1]

    @property
    def threads(self):
        return self.tiles * self.block[0] * self.block[1]


def dispatch_geometry(config):
    """Cover the image with fixed-size tiles, rounding up on each axis.

    Edge tiles may hang past the image; the kernels skip those coordinates.
    """
    bx, by = config.block_size
    grid = (
        (config.width + bx - 1) // bx,
        (config.height + by - 1) // by,
    )
    return DispatchGeometry(block=(bx, by), grid=grid)
