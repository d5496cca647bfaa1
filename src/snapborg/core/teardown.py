"""Ordered cleanup of the resources a backup run acquired."""

import logging

from .. import __util__

logger = logging.getLogger(__name__)


class TeardownStack:
    """Cleanup actions, run last registered first.

    Resources are registered right after they are acquired, so unwinding
    releases exactly what exists, in reverse order of acquisition.
    """

    def __init__(self) -> None:
        self._actions = []

    def __len__(self) -> int:
        return len(self._actions)

    def push(self, description, func, *args) -> None:
        """Register ``func(*args)`` to run on unwind."""
        self._actions.append((description, func, args))

    def unwind(self) -> list[Exception]:
        """Run every registered action and return the errors they raised.

        A failing action doesn't stop the others, except for a FatalError
        which drops all remaining actions and is re-raised.
        """
        errors = []
        while self._actions:
            description, func, args = self._actions.pop()
            logger.debug("Teardown: %s", description)
            try:
                func(*args)
            except __util__.FatalError:
                skipped = [d for d, _, _ in reversed(self._actions)]
                self._actions.clear()
                if skipped:
                    logger.critical(
                        "Not attempting remaining cleanup: %s", ", ".join(skipped)
                    )
                raise
            except Exception as e:
                logger.error("Failed to %s: %s", description, e)
                errors.append(e)
        return errors
