"""Verbosity switch and TensorFlow log suppression shared by the package."""

from __future__ import annotations

import os
import sys
import warnings

_VERBOSE_FLAGS = {"--verbose", "-v"}

VERBOSE = False


def set_verbose(enabled: bool) -> None:
    global VERBOSE
    VERBOSE = bool(enabled)


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


def cli_requested_verbose(argv=None) -> bool:
    args = sys.argv[1:] if argv is None else argv
    return any(arg in _VERBOSE_FLAGS for arg in args)


def quiet_tensorflow(verbose: bool) -> bool:
    """Silence TensorFlow's startup chatter unless verbose output was asked for.

    Must run before ``tensorflow`` is imported for ``TF_CPP_MIN_LOG_LEVEL`` to
    take effect. Returns ``True`` when messages are being suppressed.
    """

    env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
    suppress = (not verbose) and env_log_level != "0"

    if suppress and env_log_level is None:
        os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

    if suppress:
        warnings.filterwarnings(
            "ignore",
            message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
            category=UserWarning,
            module="google.protobuf",
        )
    return suppress


def quiet_tensorflow_logger() -> None:
    import tensorflow as tf

    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")
