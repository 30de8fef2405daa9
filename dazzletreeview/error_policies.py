"""
Error handling policies for DazzleTreeView.

This module provides a flexible error handling system through the Policy
pattern, allowing users to decide what happens when a generator fails while
fetching or creating nodes. Without a policy, failures propagate to the
caller of refresh()/visit() and the store keeps its pre-call state.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _describe(node: Any) -> Optional[str]:
    """Best-effort label for the node being processed."""
    if node is None:
        return None
    data = getattr(node, 'data', None)
    if data is not None:
        return str(data)
    name = getattr(node, 'name', None)
    if name is not None:
        return str(name)
    return str(node)


def _default_for(method_name: str) -> Any:
    # None from fetch_children makes the Tree keep the cached children
    if method_name == 'confirm_move':
        return False
    return None


class ErrorPolicy(ABC):
    """
    Base class for error handling policies.

    Subclasses implement different strategies for handling errors raised by
    a generator.
    """

    @abstractmethod
    async def handle(self, error: Exception, method_name: str, node: Any, *args, **kwargs) -> Any:
        """
        Handle an error raised by an async generator method.

        Args:
            error: The exception that was raised
            method_name: Name of the method that failed (e.g., 'fetch_children')
            node: The node being processed when the error occurred
            *args: Additional positional arguments from the failed method
            **kwargs: Additional keyword arguments from the failed method

        Returns:
            A replacement result, or re-raises the exception.
        """
        pass

    def handle_sync(self, error: Exception, method_name: str, node: Any, *args, **kwargs) -> Any:
        """
        Handle an error raised by a synchronous generator method.

        Node construction (create_node, create_root_node) has no sensible
        replacement value, so the default re-raises.
        """
        raise error


class FailFastPolicy(ErrorPolicy):
    """
    Policy that immediately re-raises any error.

    This is the default behavior - any error halts the operation and the
    tree keeps the state it had before the call.
    """

    async def handle(self, error: Exception, method_name: str, node: Any, *args, **kwargs) -> Any:
        """Re-raise the error immediately."""
        raise error


class ContinueOnErrorsPolicy(ErrorPolicy):
    """
    Policy that logs errors and continues.

    A branch whose children cannot be fetched keeps its cached children,
    expand and selection state included, and a move whose confirmation
    fails is vetoed. Errors are collected for later inspection.
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize the policy.

        Args:
            verbose: If True, log a warning for every error
        """
        self.errors = []
        self.skipped_nodes = []
        self.verbose = verbose

    async def handle(self, error: Exception, method_name: str, node: Any, *args, **kwargs) -> Any:
        """
        Record the error and return a sensible default.

        Returns:
            - None for fetch_children, so the cached children are kept
            - False for confirm_move
            - None for anything else
        """
        label = _describe(node)
        self.errors.append({
            'node': label,
            'method': method_name,
            'error': error,
            'error_type': type(error).__name__,
            'error_message': str(error),
        })
        if method_name == 'fetch_children' and label is not None:
            self.skipped_nodes.append(label)

        if self.verbose:
            if isinstance(error, PermissionError):
                logger.warning("Skipping inaccessible node '%s': %s", label, error)
            else:
                logger.warning("Error in %s for '%s': %s", method_name, label, error)

        return _default_for(method_name)

    def get_statistics(self) -> dict:
        """
        Get statistics about errors encountered.

        Returns:
            Dictionary with error counts and details
        """
        return {
            'total_errors': len(self.errors),
            'permission_errors': sum(1 for e in self.errors if e['error_type'] == 'PermissionError'),
            'skipped_nodes': len(self.skipped_nodes),
            'errors': self.errors,
        }


class CollectErrorsPolicy(ContinueOnErrorsPolicy):
    """
    Policy that collects all errors without logging, for batch processing.

    Useful for collecting all errors and presenting them at the end.
    """

    def __init__(self):
        super().__init__(verbose=False)


class ThresholdPolicy(ErrorPolicy):
    """
    Policy that tolerates errors up to a threshold, then fails.

    Useful when some errors are expected but too many indicate a systemic
    problem with the data source.
    """

    def __init__(self, max_errors: int = 10, verbose: bool = True):
        """
        Initialize threshold policy.

        Args:
            max_errors: Maximum errors to tolerate before failing
            verbose: If True, log a warning for every tolerated error
        """
        self.max_errors = max_errors
        self.error_count = 0
        self.verbose = verbose
        self.errors = []

    async def handle(self, error: Exception, method_name: str, node: Any, *args, **kwargs) -> Any:
        """Return a default if under the threshold, otherwise raise."""
        self.error_count += 1
        self.errors.append(error)

        if self.error_count > self.max_errors:
            raise RuntimeError(f"Error threshold exceeded ({self.max_errors} errors)") from error

        if self.verbose:
            logger.warning(
                "[%d/%d] Error in %s for '%s': %s",
                self.error_count, self.max_errors, method_name, _describe(node), error,
            )

        return _default_for(method_name)
