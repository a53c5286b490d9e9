import logging
import sys

_logging_context = None
_loggers = {}

verbosity_to_loglevel = {
    -3: logging.NOTSET,
    -2: logging.CRITICAL,
    -1: logging.ERROR,
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}

loglevel_to_verbosity = {v: k for k, v in verbosity_to_loglevel.items()}


def configure(
    logger, stream, level=logging.WARNING, format="{levelname}:{name}:{message}"
):
    """Route a non-propagating logger to a single stream."""
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(format, style="{"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def set_logging_context(ctx):
    global _logging_context

    logger = logging.getLogger("hicmatrix")

    if _logging_context != ctx:
        if ctx == "lib":
            configure(
                logger, stream=sys.stdout, level=logging.WARNING, format="{message}"
            )
            logging.captureWarnings(False)
        elif ctx == "cli":
            configure(logger, stream=sys.stderr, level=logging.INFO)
            logging.captureWarnings(True)
        else:
            raise ValueError(f"Unknown logging context: '{ctx}'")
        _logging_context = ctx


def get_logging_context():
    return _logging_context


def set_verbosity_level(level):
    logger = logging.getLogger("hicmatrix")
    try:
        loglevel = verbosity_to_loglevel[level]
    except KeyError:
        raise ValueError(
            f"Verbosity level must be one of: -3, -2, -1, 0, 1, 2; got '{level}'."
        ) from None
    logger.setLevel(loglevel)


def get_verbosity_level():
    logger = logging.getLogger("hicmatrix")
    return loglevel_to_verbosity[logger.level]


def get_logger(name="hicmatrix"):
    global _loggers, _logging_context

    if _logging_context is None:
        set_logging_context("lib")

    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
        _loggers[name].addHandler(logging.NullHandler())

    return _loggers[name]
