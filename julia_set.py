import argparse
import enum
import math
import sys
from dataclasses import dataclass

import julia_image
from julia_config import (
    BACKENDS,
    BLOCK_SIZE,
    C_IMAG,
    C_REAL,
    HEIGHT,
    MAX_ITER,
    OUTPUT_FILE,
    TIMED_RUNS,
    WIDTH,
    JuliaConfig,
    dispatch_geometry,
)
from julia_errors import JuliaError


class Stage(enum.Enum):
    UNINITIALIZED = "uninitialized"
    ALLOCATED = "allocated"
    WARMED_UP = "warmed up"
    MEASURING = "measuring"
    RETRIEVED = "retrieved"
    PERSISTED = "persisted"
    RELEASED = "released"


@dataclass(frozen=True)
class Metrics:
    timings_ms: tuple
    pixels: int
    max_iter: int
    flops_per_iteration: int

    @property
    def total_ms(self):
        return sum(self.timings_ms)

    @property
    def average_ms(self):
        return self.total_ms / len(self.timings_ms)

    @property
    def pixels_per_second(self):
        return self.pixels / (self.average_ms / 1000.0)

    @property
    def flops_per_second(self):
        # Upper bound: assumes every pixel runs the full iteration cap
        return self.pixels * self.max_iter * self.flops_per_iteration / (self.average_ms / 1000.0)


def compute_metrics(timings_ms, config):
    timings_ms = tuple(float(t) for t in timings_ms)
    if not timings_ms:
        raise ValueError("no timed runs to average")
    for t in timings_ms:
        if not (math.isfinite(t) and t > 0):
            raise ValueError(f"run time must be a positive finite number, got {t!r}")
    return Metrics(
        timings_ms=timings_ms,
        pixels=config.pixels,
        max_iter=config.max_iter,
        flops_per_iteration=config.flops_per_iteration,
    )


def make_backend(config, geometry):
    if config.backend == "cpu":
        from julia_cpu import CpuBackend
        return CpuBackend(config, geometry)
    try:
        from julia_cuda import CudaBackend
    except ImportError as e:
        raise JuliaError(
            f"CUDA backend unavailable ({e}); install the 'cuda' extra or use --backend cpu"
        ) from e
    return CudaBackend(config, geometry)


class JuliaRun:
    """Drives one render from allocation to release.

    The backend is released on every exit path, including failures during
    allocation or dispatch.
    """

    def __init__(self, config, backend=None):
        self.config = config.validate()
        self.geometry = dispatch_geometry(config)
        self.backend = backend if backend is not None else make_backend(config, self.geometry)
        self.stage = Stage.UNINITIALIZED
        self.completed_runs = 0
        self.timings_ms = []
        self.image = None
        self.metrics = None
        self.saved = False

    def run(self):
        cfg = self.config
        try:
            self.backend.allocate()
            self.stage = Stage.ALLOCATED
            self._print_setup()

            print("Warming up...")
            self.backend.dispatch()
            self.stage = Stage.WARMED_UP

            self.stage = Stage.MEASURING
            for k in range(cfg.timed_runs):
                elapsed = self.backend.dispatch()
                self.timings_ms.append(elapsed)
                self.completed_runs = k + 1
                print(f"Run {k + 1}/{cfg.timed_runs}: {elapsed:.3f} ms")

            self.image = self.backend.retrieve()
            self.stage = Stage.RETRIEVED

            self.saved = julia_image.write_pgm(cfg.output, self.image, cfg.legacy_header)
            if self.saved:
                self.stage = Stage.PERSISTED
                print(f"Image saved to {cfg.output}")
            if cfg.png:
                if julia_image.save_png(cfg.png, self.image):
                    print(f"Preview saved to {cfg.png}")
                else:
                    self.saved = False

            try:
                self.metrics = compute_metrics(self.timings_ms, cfg)
            except ValueError as e:
                raise JuliaError(f"bad timing from {self.backend.name} backend: {e}") from e
            self._print_metrics()
        except BaseException:
            # Report a failed teardown but keep the error that stopped the run
            try:
                self.backend.release()
            except JuliaError as e:
                print(f"Error: cleanup failed: {e}", file=sys.stderr)
            finally:
                self.stage = Stage.RELEASED
            raise

        try:
            self.backend.release()
        finally:
            self.stage = Stage.RELEASED

        if cfg.show:
            julia_image.show(self.image, f"Julia set c = {cfg.c_real} + {cfg.c_imag}i")
        return self.saved

    def _print_setup(self):
        cfg, geo = self.config, self.geometry
        print(f"Julia set: c = {cfg.c_real} + {cfg.c_imag}i, max iterations {cfg.max_iter}")
        print(f"Resolution: {cfg.width}x{cfg.height} ({cfg.pixels} pixels)")
        self.backend.describe()
        print(f"Grid: {geo.grid[0]}x{geo.grid[1]} blocks, Block: {geo.block[0]}x{geo.block[1]} threads")

    def _print_metrics(self):
        m = self.metrics
        print("-" * 40)
        print(f"Average time: {m.average_ms:.3f} ms over {len(m.timings_ms)} runs")
        print(f"Throughput: {m.pixels_per_second / 1e6:.2f} Mpixels/s")
        print(f"Estimated performance: {m.flops_per_second / 1e9:.2f} GFLOPS "
              f"(upper bound, {m.flops_per_iteration} ops x {m.max_iter} iterations per pixel)")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Render a Julia set on the GPU and report throughput.",
    )
    parser.add_argument("--width", type=int, default=WIDTH, help=f"image width (default: {WIDTH})")
    parser.add_argument("--height", type=int, default=HEIGHT, help=f"image height (default: {HEIGHT})")
    parser.add_argument("--iter", dest="max_iter", type=int, default=MAX_ITER,
                        help=f"iteration cap (default: {MAX_ITER})")
    parser.add_argument("--c-real", type=float, default=C_REAL, help=f"real part of c (default: {C_REAL})")
    parser.add_argument("--c-imag", type=float, default=C_IMAG, help=f"imaginary part of c (default: {C_IMAG})")
    parser.add_argument("--block", type=int, nargs=2, default=BLOCK_SIZE, metavar=("X", "Y"),
                        help="threads per block (default: 16 16)")
    parser.add_argument("--runs", dest="timed_runs", type=int, default=TIMED_RUNS,
                        help=f"timed runs after warm-up (default: {TIMED_RUNS})")
    parser.add_argument("--backend", choices=BACKENDS, default="cuda")
    parser.add_argument("--no-fast-math", dest="fast_math", action="store_false",
                        help="compile the CUDA kernel without -use_fast_math")
    parser.add_argument("-o", "--output", default=OUTPUT_FILE, help=f"PGM output (default: {OUTPUT_FILE})")
    parser.add_argument("--legacy-header", action="store_true",
                        help='write the dimension line as "<width>, <height>"')
    parser.add_argument("--png", default=None, help="also save a PNG preview")
    parser.add_argument("--show", action="store_true", help="display the image when done")
    args = parser.parse_args(argv)

    config = JuliaConfig(
        width=args.width,
        height=args.height,
        max_iter=args.max_iter,
        c_real=args.c_real,
        c_imag=args.c_imag,
        block_size=tuple(args.block),
        timed_runs=args.timed_runs,
        output=args.output,
        legacy_header=args.legacy_header,
        backend=args.backend,
        fast_math=args.fast_math,
        png=args.png,
        show=args.show,
    )
    try:
        config.validate()
    except ValueError as e:
        parser.error(str(e))
    return config


def main(argv=None):
    config = parse_args(argv)
    try:
        saved = JuliaRun(config).run()
    except JuliaError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0 if saved else 1


if __name__ == "__main__":
    sys.exit(main())
