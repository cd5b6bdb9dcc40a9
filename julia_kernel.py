from numba import jit

# Viewport is 4 plane units on each axis, centred on the origin
VIEWPORT = 4.0
ESCAPE_RADIUS_SQ = 4.0

# CUDA kernel: one thread per pixel, single precision
cuda_code = """
__global__ void julia(unsigned char *output, int width, int height, int max_iter, float c_real, float c_imag)
{
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;
    if (x >= width || y >= height) return;

    float zx = (x - width / 2.0f) * 4.0f / width;
    float zy = (y - height / 2.0f) * 4.0f / height;

    int i = 0;
    while (i < max_iter && zx * zx + zy * zy < 4.0f) {
        float tmp = zx * zx - zy * zy + c_real;
        zy = 2.0f * zx * zy + c_imag;
        zx = tmp;
        i++;
    }

    output[y * width + x] = (i == max_iter) ? 0 : (unsigned char)((255LL * i) / max_iter);
}
"""


@jit(nopython=True)
def plane_coordinate(x, y, width, height):
    """Map pixel (x, y) into the complex plane.

    Doubling the resolution only changes the sampling density, the corners
    stay at -2 and 2 - 4/width (resp. height).
    """
    real = (x - width / 2.0) * VIEWPORT / width
    imag = (y - height / 2.0) * VIEWPORT / height
    return real, imag


@jit(nopython=True)
def escape_iterations(z_real, z_imag, max_iter, c_real, c_imag):
    """Number of z <- z*z + c steps before |z|^2 reaches 4, capped at max_iter."""
    n = 0
    while n < max_iter and z_real * z_real + z_imag * z_imag < ESCAPE_RADIUS_SQ:
        temp = z_real * z_real - z_imag * z_imag + c_real
        z_imag = 2.0 * z_real * z_imag + c_imag
        z_real = temp
        n += 1
    return n


@jit(nopython=True)
def intensity(iterations, max_iter):
    # Points that never escape are interior and drawn black
    if iterations >= max_iter:
        return 0
    return (255 * iterations) // max_iter


@jit(nopython=True)
def pixel_value(x, y, width, height, max_iter, c_real, c_imag):
    z_real, z_imag = plane_coordinate(x, y, width, height)
    return intensity(escape_iterations(z_real, z_imag, max_iter, c_real, c_imag), max_iter)
