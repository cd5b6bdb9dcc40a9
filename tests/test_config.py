import dataclasses
import typing

import pytest

from julia_config import JuliaConfig, dispatch_geometry


def test_defaults_match_reference_run():
    cfg = JuliaConfig()
    assert (cfg.width, cfg.height) == (4096, 4096)
    assert cfg.block_size == (16, 16)
    assert cfg.timed_runs == 10
    assert cfg.flops_per_iteration == 10
    assert cfg.pixels == 4096 * 4096


def test_config_is_immutable():
    cfg = JuliaConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.width = 10


@pytest.mark.parametrize("width,height,grid", [
    (4096, 4096, (256, 256)),
    (4, 4, (1, 1)),
    (17, 16, (2, 1)),
    (1920, 1080, (120, 68)),
])
def test_grid_rounds_up(width, height, grid):
    geo = dispatch_geometry(JuliaConfig(width=width, height=height))
    assert geo.block == (16, 16)
    assert geo.grid == grid
    assert geo.threads >= width * height


@pytest.mark.parametrize("changes", [
    {"width": 0},
    {"height": -3},
    {"max_iter": 0},
    {"timed_runs": 0},
    {"block_size": (16, 0)},
    {"backend": "opencl"},
])
def test_validate_rejects_bad_values(changes):
    with pytest.raises(ValueError):
        JuliaConfig(**changes).validate()


def test_png_preview_is_optional():
    assert JuliaConfig().png is None
    assert typing.get_type_hints(JuliaConfig)["png"] == typing.Optional[str]
