from __future__ import annotations

import asyncio
from typing import Any, Callable, List


async def gather_calls(*calls: Callable[[], Any]) -> List[Any]:
    """
    Run blocking backend calls concurrently and wait for all of them.

    Results come back in call order. If any call raises, the whole gather
    raises that error; there is no partial-result mode.
    """
    return list(await asyncio.gather(*(asyncio.to_thread(call) for call in calls)))
