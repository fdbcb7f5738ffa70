import numpy as np
import pytest

from beeloc.gridmap import MapFormatError, OccupancyMap, Pose2D, load_map, render_map

HEADER = (
    "robot_specifications->global_mapsize_x 30\n"
    "robot_specifications->resolution 10\n"
    "robot_specifications->autoshifted_x 0\n"
    "robot_specifications->autoshifted_y 5\n"
    "global_map[0]: 2 3\n"
)
CELLS = "0.0 0.5 1.0\n-1 0.25 0.75\n"


def write_map(tmp_path, text):
    path = tmp_path / "map.dat"
    path.write_text(text)
    return path


@pytest.fixture
def small_map(tmp_path):
    return load_map(write_map(tmp_path, HEADER + CELLS))


def test_header_values_are_read(small_map):
    assert small_map.resolution == 10
    assert small_map.autoshifted_x == 0
    assert small_map.autoshifted_y == 5
    assert small_map.data.shape == (2, 3)
    assert (small_map.size_x, small_map.size_y) == (30, 20)
    assert (small_map.min_x, small_map.min_y) == (0, 0)
    assert (small_map.max_x, small_map.max_y) == (small_map.size_x, small_map.size_y)


def test_cells_store_free_probability_and_unknown(small_map):
    assert small_map.at(0, 0) == 1.0
    assert small_map.at(10, 0) == 0.5
    assert small_map.at(20, 0) == 0.0
    assert small_map.at(0, 10) == -1.0
    assert small_map.at(20, 10) == 0.25


def test_positions_round_half_away_from_zero(small_map):
    assert small_map.at(14, 0) == small_map.at(10, 0)
    assert small_map.at(15, 0) == small_map.at(20, 0)


def test_valid_bounds(small_map):
    assert small_map.valid(24, 14)
    assert not small_map.valid(25, 0)
    assert small_map.valid(-4, 0)
    assert not small_map.valid(-5, 0)
    assert not small_map.valid(0, 15)


def test_at_outside_raises(small_map):
    with pytest.raises(IndexError):
        small_map.at(100, 0)


def test_too_few_values(tmp_path):
    path = write_map(tmp_path, HEADER + "0.1 0.2\n")
    with pytest.raises(MapFormatError, match="required number of values"):
        load_map(path)


def test_non_float_value(tmp_path):
    path = write_map(tmp_path, HEADER + "0.1 abc 0.3 0.4 0.5 0.6\n")
    with pytest.raises(MapFormatError, match="non-float"):
        load_map(path)


def test_bad_resolution(tmp_path):
    path = write_map(tmp_path, "robot_specifications->resolution x\nglobal_map[0]: 1 1\n0\n")
    with pytest.raises(MapFormatError, match="Resolution"):
        load_map(path)


def test_missing_map_header(tmp_path):
    path = write_map(tmp_path, "robot_specifications->resolution 10\n")
    with pytest.raises(MapFormatError, match="Map size"):
        load_map(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_map(tmp_path / "absent.dat")


def test_render_map_marks_particles_and_unknown():
    data = np.zeros((10, 10))
    data[9, 9] = -1
    grid = OccupancyMap("memory", data, 10, 10, 1)
    image = render_map(grid, [Pose2D(2, 2, 0), Pose2D(7, 7, 0)])
    assert image.shape == (10, 10, 3)
    assert tuple(image[2, 2]) == (1.0, 0.0, 0.0)
    assert tuple(image[7, 7]) == (0.0, 1.0, 0.0)
    assert tuple(image[5, 7]) == (0.0, 1.0, 0.0)
    assert tuple(image[0, 0]) == (0.0, 0.0, 0.0)
    assert tuple(image[9, 9]) == (1.0, 1.0, 1.0)


def test_render_map_needs_particles():
    grid = OccupancyMap("memory", np.zeros((3, 3)), 3, 3, 1)
    with pytest.raises(ValueError):
        render_map(grid, [])