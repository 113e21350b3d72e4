import os
import sys
import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level=None, stream=None):
    """Configure the root logger once; later calls only adjust the level."""
    level = (level or os.environ.get('LOG_LEVEL', 'INFO')).upper()
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    return root
