"""
Engine executor — run one external step, fail fast.

Every stage funnels its external invocations through ``run_step`` so
that validation, logging and the receipt → exception mapping live in
one place. There are no retries: the first failed step aborts the run.
"""

from __future__ import annotations

import logging
import shlex

from appdir_conda.adapters.base import Adapter
from appdir_conda.core.errors import ExternalToolError
from appdir_conda.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


def run_step(adapter: Adapter, action: Action) -> Receipt:
    """Execute ``action`` and return its receipt.

    Raises:
        ExternalToolError: If the adapter is unavailable, validation fails
            or the tool exits non-zero.
    """
    if not adapter.is_available():
        raise ExternalToolError(
            Receipt.failure(
                adapter=adapter.name,
                action_id=action.id,
                error=f"Adapter '{adapter.name}' is not available",
            )
        )

    valid, message = adapter.validate(action)
    if not valid:
        raise ExternalToolError(
            Receipt.failure(adapter=adapter.name, action_id=action.id, error=message)
        )

    logger.info("%s", action.name or shlex.join(action.argv))
    receipt = adapter.execute(action)

    if receipt.failed:
        logger.error(
            "Step '%s' failed (exit code %s): %s",
            action.id,
            receipt.return_code,
            receipt.error,
        )
        raise ExternalToolError(receipt)

    logger.debug("Step '%s' finished in %dms", action.id, receipt.duration_ms)
    return receipt
