# -*- coding: utf-8 -*-
"""Logging setup shared by the CLI and the MPI ranks."""

# Import logging.
import logging

LOG_FORMAT = "%(asctime)s [rank %(rank)d] %(levelname)s %(name)s: %(message)s"


class _RankFilter(logging.Filter):
    """Attach the MPI rank to every record."""

    def __init__(self, rank: int) -> None:
        super().__init__()
        self.rank = int(rank)

    def filter(self, record: logging.LogRecord) -> bool:
        record.rank = self.rank
        return True


def setup_logging(level: str = "INFO", rank: int = 0) -> None:
    """Configure root logging with a rank-tagged format."""
    numeric = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'.")

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    handler.addFilter(_RankFilter(rank))

    root = logging.getLogger()
    # Replace handlers so repeated calls (tests, multiple runs) do not duplicate lines.
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(numeric)
