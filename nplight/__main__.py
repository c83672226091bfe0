# -*- coding: utf-8 -*-
"""Allow `python -m nplight`."""

from .cli import main

if __name__ == "__main__":
    main()
