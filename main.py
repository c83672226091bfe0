#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""nplight launcher script for source checkouts.

This file is intentionally small:
- check that NumPy is importable
- hand over to `nplight.cli.main`

The installed entry points are the `nplight` console script and
`python -m nplight`.
"""

# Import stdlib helpers.
import importlib.util
import sys


def _require_numpy() -> None:
    """Validate that NumPy is available before importing nplight modules."""
    if importlib.util.find_spec("numpy") is None:
        raise ModuleNotFoundError(
            "NumPy is required to run nplight. Activate your virtual environment "
            f"or install it with '{sys.executable} -m pip install numpy'."
        )


if __name__ == "__main__":
    _require_numpy()
    # Import the CLI only after the dependency check.
    from nplight.cli import main

    main()
