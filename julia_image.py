import sys

import matplotlib.pyplot as plt
import numpy as np


def pgm_header(width, height, legacy=False):
    """Binary greyscale (P5) header.

    legacy=True writes the dimension line as "<width>, <height>", matching
    older julia_set.pgm files; strict PGM readers only accept whitespace there.
    """
    separator = ", " if legacy else " "
    return f"P5\n{width}{separator}{height}\n255\n".encode("ascii")


def write_pgm(path, image, legacy_header=False):
    """Write `image` (height x width, uint8) to `path`.

    Returns False, after reporting on stderr, when the file can't be written.
    """
    height, width = image.shape
    try:
        with open(path, "wb") as f:
            f.write(pgm_header(width, height, legacy_header))
            f.write(np.ascontiguousarray(image, dtype=np.uint8).tobytes())
    except OSError as e:
        print(f"Error: could not write {path}: {e}", file=sys.stderr)
        return False
    return True


def save_png(path, image):
    try:
        plt.imsave(path, image, cmap="gray", vmin=0, vmax=255)
    except OSError as e:
        print(f"Error: could not write {path}: {e}", file=sys.stderr)
        return False
    return True


def show(image, title="Julia set"):
    plt.imshow(image, cmap="gray", vmin=0, vmax=255, interpolation="nearest")
    plt.title(title)
    plt.axis("off")
    plt.show()
