"""Entry point for running the matchmaking bot via python -m bots"""

import asyncio

from bots.matchmaking import main

if __name__ == "__main__":
    asyncio.run(main())
