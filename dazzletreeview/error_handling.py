"""
Error handling generator for DazzleTreeView.

This module provides the ErrorHandlingGenerator that wraps another node
generator and delegates error handling to pluggable policies.
"""

import asyncio
import functools
from typing import Any, Optional

from .error_policies import ErrorPolicy, FailFastPolicy


class ErrorHandlingGenerator:
    """
    Generator that wraps another generator and handles errors through policies.

    This uses the dynamic proxy pattern to wrap every method of the
    underlying generator, catching exceptions and delegating to a
    configurable error policy. The Tree sees it as an ordinary generator.
    """

    def __init__(self, base_generator: Any, policy: Optional[ErrorPolicy] = None):
        """
        Initialize the error handling generator.

        Args:
            base_generator: The generator to wrap
            policy: Error handling policy (defaults to FailFastPolicy)
        """
        self._base_generator = base_generator
        self._policy = policy or FailFastPolicy()

    def __getattr__(self, name: str) -> Any:
        """
        Dynamic proxy that wraps all methods with error handling.

        Called for attributes that don't exist on this object, so every
        generator method ends up here.
        """
        attr = getattr(self._base_generator, name)

        # Properties and plain attributes pass straight through
        if not callable(attr):
            return attr

        @functools.wraps(attr)
        def wrapper(*args, **kwargs):
            node = args[0] if args else None
            try:
                result = attr(*args, **kwargs)
            except Exception as e:
                return self._policy.handle_sync(e, name, node, *args, **kwargs)

            if asyncio.iscoroutine(result):
                return self._handle_coroutine(result, name, *args, **kwargs)
            return result

        return wrapper

    async def _handle_coroutine(self, coro, method_name: str, *args, **kwargs) -> Any:
        """
        Handle errors in async methods.

        Args:
            coro: The coroutine to execute
            method_name: Name of the method being called
            *args: Original method arguments
            **kwargs: Original method keyword arguments

        Returns:
            The result from the coroutine, or a default from the policy
        """
        try:
            return await coro
        except Exception as e:
            # The node is always the first argument of a generator method
            node = args[0] if args else None
            return await self._policy.handle(e, method_name, node, *args, **kwargs)

    def get_policy(self) -> ErrorPolicy:
        return self._policy

    def set_policy(self, policy: ErrorPolicy) -> None:
        self._policy = policy

    def get_base_generator(self) -> Any:
        return self._base_generator

    def __repr__(self) -> str:
        return f"ErrorHandlingGenerator({self._base_generator!r}, policy={self._policy.__class__.__name__})"


def create_resilient_generator(base_generator: Any, strict: bool = False, verbose: bool = True) -> ErrorHandlingGenerator:
    """
    Convenience function to create an error-handling generator.

    Args:
        base_generator: The generator to wrap
        strict: If True, use FailFastPolicy; if False, use ContinueOnErrorsPolicy
        verbose: If True, log warnings for errors (only applies when strict=False)

    Returns:
        An ErrorHandlingGenerator configured appropriately
    """
    from .error_policies import ContinueOnErrorsPolicy

    if strict:
        policy = FailFastPolicy()
    else:
        policy = ContinueOnErrorsPolicy(verbose=verbose)

    return ErrorHandlingGenerator(base_generator, policy)
