"""Remote-first persistence with a local fallback."""

import logging
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PersistenceGateway:
    """Runs an operation against the remote store, falling back to local storage.

    Callers never see a remote failure: it is logged and the local fallback's
    result is returned instead. The fallback is expected to leave local
    storage as if the remote had never been tried.
    """

    def perform(
        self,
        remote_op: Callable[[], T],
        local_fallback: Callable[[], T],
        on_success: Optional[Callable[[T], None]] = None,
        description: str = "",
    ) -> T:
        """Try ``remote_op``; on any error return ``local_fallback()``.

        Args:
            remote_op: Call against the remote store
            local_fallback: Same operation against local storage
            on_success: Called with the remote result when the remote call worked
            description: Name used in log messages

        Returns:
            The remote result, or the fallback's result
        """
        name = description or getattr(remote_op, "__name__", "operation")
        try:
            result = remote_op()
        except Exception as e:
            logger.warning(f"Remote {name} failed, using local storage: {e}")
            return local_fallback()

        logger.debug(f"Remote {name} succeeded")
        if on_success is not None:
            on_success(result)
        return result
