import os
import traceback
from contextlib import contextmanager

import numpy as np
import pycuda.driver as cuda
from pycuda.compiler import SourceModule

from julia_errors import AcceleratorError, AllocationError
from julia_kernel import cuda_code


def _call_site(exc):
    # Innermost frame of this module is the driver call that failed
    for frame in reversed(traceback.extract_tb(exc.__traceback__)):
        if frame.filename == __file__:
            return f"{os.path.basename(frame.filename)}:{frame.lineno}"
    return "<unknown>"


@contextmanager
def checked(operation):
    try:
        yield
    except cuda.Error as e:
        raise AcceleratorError(operation, _call_site(e), str(e)) from e


class CudaBackend:
    name = "cuda"

    def __init__(self, config, geometry, device_id=0):
        self.config = config
        self.geometry = geometry
        self.device_id = device_id
        self.device = None
        self.context = None
        self.kernel = None
        self.host = None
        self.output_gpu = None
        self.start = None
        self.stop = None

    def allocate(self):
        nbytes = self.config.pixels

        with checked("cuInit"):
            cuda.init()
            self.device = cuda.Device(self.device_id)
            self.context = self.device.make_context()

        try:
            self.host = np.zeros((self.config.height, self.config.width), dtype=np.uint8)
        except MemoryError as e:
            raise AllocationError("host", nbytes, str(e)) from e

        # Allocate memory on the GPU
        with checked("cuMemAlloc"):
            try:
                self.output_gpu = cuda.mem_alloc(nbytes)
            except cuda.MemoryError as e:
                raise AllocationError("device", nbytes, str(e)) from e

        with checked("SourceModule"):
            options = ["-use_fast_math"] if self.config.fast_math else []
            mod = SourceModule(cuda_code, options=options)
            self.kernel = mod.get_function("julia")

        with checked("cuEventCreate"):
            self.start = cuda.Event()
            self.stop = cuda.Event()

    def describe(self):
        with checked("cuDeviceGetAttribute"):
            major, minor = self.device.compute_capability()
            memory_mb = self.device.total_memory() // (1024 * 1024)
            print(f"Device: {self.device.name()} (compute {major}.{minor}, {memory_mb} MB)")

    def dispatch(self):
        cfg = self.config
        bx, by = self.geometry.block

        with checked("cuEventRecord"):
            self.start.record()

        # Launch the kernel
        with checked("julia<<<>>>"):
            self.kernel(
                self.output_gpu,
                np.int32(cfg.width),
                np.int32(cfg.height),
                np.int32(cfg.max_iter),
                np.float32(cfg.c_real),
                np.float32(cfg.c_imag),
                block=(bx, by, 1),
                grid=self.geometry.grid,
            )

        with checked("cuEventRecord"):
            self.stop.record()
        with checked("cuEventSynchronize"):
            self.stop.synchronize()
        with checked("cuEventElapsedTime"):
            return self.start.time_till(self.stop)

    def retrieve(self):
        # Copy the result back to the CPU
        with checked("cuMemcpyDtoH"):
            cuda.memcpy_dtoh(self.host, self.output_gpu)
        return self.host

    def release(self):
        # Free device resources before tearing down the context that owns them
        try:
            if self.output_gpu is not None:
                with checked("cuMemFree"):
                    self.output_gpu.free()
        finally:
            self.output_gpu = None
            self.kernel = None
            self.start = self.stop = None
            self.host = None
            context, self.context = self.context, None
            if context is not None:
                with checked("cuCtxPopCurrent"):
                    try:
                        context.pop()
                    finally:
                        context.detach()
