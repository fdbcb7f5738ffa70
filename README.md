# beeloc

Building blocks for particle-filter localisation on occupancy-grid maps:
a map file reader, a grid with world-coordinate lookup, an odometry motion
model, and a small logging toolkit (`beeloc.log`) that the map reader
reports its progress through.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Maps

`beeloc.gridmap.load_map(path)` reads a map file made of header lines
followed by the cell values:

```
robot_specifications->resolution 10
robot_specifications->autoshifted_x 0
robot_specifications->autoshifted_y 0
global_map[0]: 800 800
0.0 0.1 -1 ...
```

- The resolution line is required; the two autoshift lines default to 0.
- `global_map[0]` is followed by the number of rows, then the number of
  columns; the header ends there.
- Exactly rows × columns values must follow, separated by whitespace.
  Each value `v` is stored as `1 - v`; a negative value (unknown cell) is
  stored as `-1`.

A malformed file raises `beeloc.gridmap.MapFormatError` (a `ValueError`)
with a message naming what was wrong, for example
`"Invalid Resolution provided"` or
`"File did not have the required number of values!"`.

The result is an `OccupancyMap`:

```python
from beeloc.gridmap import Pose2D, load_map, render_map

grid = load_map("wean.dat")
print(grid.resolution, grid.size_x, grid.size_y)   # size is in world units
if grid.valid(4000.0, 4000.0):
    print(grid.at(4000.0, 4000.0))

image = render_map(grid, [Pose2D(4000.0, 4000.0, 0.0), Pose2D(4100.0, 4000.0, 0.0)])
print(image.shape)   # (rows, columns, 3)
```

- `data` is a float32 NumPy array indexed `[row, column]`.
- `at(x, y)` and `valid(x, y)` take world coordinates, divide them by the
  resolution and round half away from zero to find the cell; `at` raises
  `IndexError` for a position outside the grid.
- `OccupancyMap` can also be built directly from a grid:
  `OccupancyMap("name", data, size_x, size_y, resolution)`.
- `render_map(grid, particles)` returns a float RGB array with values in
  `[0, 1]`, one pixel per cell. Unknown cells are drawn white (as occupied),
  each particle as a small red disc and the last particle as a larger green
  disc. At least one particle is required.

## Motion model

```python
from beeloc.gridmap import Pose2D
from beeloc.motion import MotionModel

model = MotionModel(0.01, 0.01, 0.01, seed=42)
particle = Pose2D(0.0, 0.0, 0.0)
model.predict(particle, Pose2D(0.0, 0.0, 0.0), Pose2D(1.0, 1.0, 0.0))
print(particle)
```

`MotionModel.predict(particle, prev_odom, curr_odom)` splits the odometry
step into a first rotation, a translation and a second rotation, subtracts
sampled noise from each and moves `particle` in place. Some details:

- The first rotation is taken from the odometry only when the step's change
  in y exceeds `beeloc.motion.MIN_CHANGE`; otherwise it is 0.
- All three noise terms are drawn from a zero-mean normal distribution with
  the first rotation's variance (`rot1_var`).
- The random generator is reseeded with `seed` on every call, so the same
  inputs always give the same result. Negative variances raise `ValueError`.

## Logging

`beeloc.log` provides named loggers with levels, sinks and formatters.

```python
import io

from beeloc.log.levels import Level
from beeloc.log.logger import Logger
from beeloc.log.sinks import StreamSink

buffer = io.StringIO()
log = Logger("map", [StreamSink(buffer, False)])
log.set_level(Level.DEBUG)
log.info("resolution: {}", 10)
print(buffer.getvalue())   # [2024-01-01 12:00:00.123] [map] [info] resolution: 10
```

- `beeloc.log.levels`: `Level` (`TRACE` … `CRITICAL`, `OFF`) and
  `LogLevels`, a name-to-level table with a default.
- `beeloc.log.logger`: `Logger` with `trace`, `debug`, `info`, `warn`,
  `error` and `critical` (messages are `str.format` templates), `set_level`,
  `flush_on`, `set_formatter`, `clone`, and a backtrace
  (`enable_backtrace(n)`, `dump_backtrace()`) that keeps the last `n`
  messages of any level. Errors raised by sinks or formatting go to the
  handler given to `set_error_handler`, or are printed to stderr at most
  once a second.
- `beeloc.log.formatter`: `LogMessage`, the `Formatter` base class and
  `SimpleFormatter`, which writes `[date time.millis] [name] [level] text`.
- `beeloc.log.sinks`: `StreamSink`, `StdoutSink`, `StderrSink`,
  `AnsiColorSink` (colours the level name; `ColorMode.ALWAYS`, `AUTOMATIC`
  or `NEVER`) and `DistSink`, which forwards to several sinks. Every sink has
  its own level (`set_level`) and formatter.
- `beeloc.log.files`: `RotatingFileSink(base_filename, max_size, max_files)`
  renames `log.txt` to `log.1.txt`, `log.1.txt` to `log.2.txt` and so on
  when the file would grow beyond `max_size` bytes; `FileHelper`,
  `split_by_extension`, `calc_filename`, `dir_name` and `create_dir` are the
  helpers it uses. Failures raise `FileSinkError`.
- `beeloc.log.backtracer`: `Backtracer`, the bounded message store behind a
  logger's backtrace.
- `beeloc.log.stopwatch`: `Stopwatch`, which formats as elapsed seconds:
  `f"{sw:.3f}"`.
- `beeloc.log.formatting`: padding helpers (`pad2`, `pad3`, `pad6`, `pad9`,
  `pad_uint`), `time_fraction`, and `format_range`, `format_tuple` and
  `join` for collections: `format_range([1, "a"])` gives `{1, "a"}`.

### Registry and asynchronous loggers

`beeloc.log.registry` keeps a process-wide table of loggers. Its default
logger has an empty name and writes to standard output through an
`AnsiColorSink`; `load_map` reports its progress through it.

```python
import io

from beeloc.log import registry
from beeloc.log.sinks import StdoutSink, StreamSink

buffer = io.StringIO()
log = registry.create("map", StreamSink, buffer)   # builds the sink, registers the logger
assert registry.get("map") is log

worker = registry.create_async("worker", StdoutSink)
worker.info("written on a background thread")
registry.instance().shutdown()   # drops all loggers and stops the thread pool
```

- `create` registers the new logger under its name; registering a name
  twice raises `ValueError`.
- `create_async` writes through the global `ThreadPool`, creating one with
  a queue of 8192 messages and one thread if there is none; it blocks when
  the queue is full. `create_async_nb` overwrites the oldest queued message
  instead.
- `init_thread_pool(q_size, thread_count)` replaces the global pool.
- `set_level`, `drop`, `drop_all`, `default_logger` and
  `set_default_logger` act on the global registry.

## What is not included

beeloc has no command-line program and opens no windows: `render_map`
returns an image array for the caller to show or save. It provides no
sensor model, weighting or resampling step and no filter loop; those are
left to the code that uses the map and motion model.