"""Named loggers with levels, sinks, formatters, backtraces, rotating files and async delivery."""