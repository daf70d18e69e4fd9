"""
Adapter base — the contract between the pipeline and external tools.

The pipeline never calls subprocess directly. It hands an Action to an
adapter and receives a Receipt. Tests swap in a MockAdapter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from appdir_conda.core.models.action import Action, Receipt


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter can run anything at all.

        Should be fast and never raise.
        """

    @abstractmethod
    def validate(self, action: Action) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, action: Action) -> Receipt:
        """Execute the action and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
