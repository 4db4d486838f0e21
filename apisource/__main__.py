"""Entry point for `python -m apisource`.

Usage:
    python -m apisource
    uv run python -m apisource
"""

from __future__ import annotations

import asyncio

from apisource.app import main

asyncio.run(main())
