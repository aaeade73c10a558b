"""Invoke helpers — call sync or async callables uniformly.

Controller methods and current-user providers can be ``def`` or
``async def``. The Router calls both through this one helper.

Usage::

    from gravitycar._internal.invoke import invoke

    result = await invoke(controller.list, request)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
