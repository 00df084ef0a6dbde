"""
Fan-out / join helpers.

Every branch of a fan-out runs to completion: a failing branch never cancels
its siblings. Only after all outcomes are collected is the group judged, and
the first failure (in argument order) is raised.
"""

import asyncio
import logging
from typing import Any, Awaitable

logger = logging.getLogger("nifi-operator.concurrency")


async def run_all(*aws: Awaitable[Any]) -> list[Any]:
    """Await every awaitable concurrently, returning results and exceptions in order."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        # Cancellation and interpreter exits are not branch failures
        if isinstance(result, BaseException) and not isinstance(result, Exception):
            raise result
    return results


def raise_first(results: list[Any], context: str) -> list[Any]:
    """Raise the first exception in ``results``; log the rest."""
    errors = [r for r in results if isinstance(r, Exception)]
    if not errors:
        return results
    for extra in errors[1:]:
        logger.warning(f"{context}: additional failure: {extra}")
    raise errors[0]


async def join_all(*aws: Awaitable[Any], context: str = "tier") -> list[Any]:
    return raise_first(await run_all(*aws), context)
