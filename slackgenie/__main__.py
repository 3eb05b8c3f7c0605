"""Entry point for `python -m slackgenie`.

Usage:
    python -m slackgenie
    slackgenie
"""

from __future__ import annotations

import asyncio

from slackgenie.app import main


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
