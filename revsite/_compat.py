"""
This module provides the async primitives that revsite builds on. Currently
only supporting asyncio. Blocking calls (mostly filesystem access) are
pushed to the default executor so that a slow disk only stalls the
request that is waiting for it.
"""

import os
import asyncio
import functools


async def to_thread(func, *args, **kwargs):
    """ Run a blocking function in the default executor and return its result.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


async def isfile(path):
    """ Async version of ``os.path.isfile()``. False for directories and
    for paths that do not exist.
    """
    return await to_thread(os.path.isfile, path)


def _read_bytes(path):
    with open(path, "rb") as f:
        return f.read()


async def read_bytes(path):
    """ Read the full contents of a file without blocking the event loop.
    """
    return await to_thread(_read_bytes, path)
