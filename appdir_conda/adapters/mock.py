"""
Mock adapter — test double for external tool invocations.

Returns success for everything unless told otherwise. Optional
side-effect callbacks let tests fake what a tool would have written
to disk (e.g. the Miniconda installer populating the prefix).
"""

from __future__ import annotations

from collections.abc import Callable

from appdir_conda.adapters.base import Adapter
from appdir_conda.core.models.action import Action, Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    Responses and side effects are keyed by action ID.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._available = available
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._effects: dict[str, Callable[[Action], None]] = {}
        self._call_log: list[Action] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[Action]:
        """All actions this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    def calls(self, prefix: str = "") -> list[Action]:
        """Actions whose ID starts with ``prefix``."""
        return [a for a in self._call_log if a.id.startswith(prefix)]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "Mock failure") -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            return_code=1,
        )

    def on(self, action_id: str, effect: Callable[[Action], None]) -> None:
        """Run ``effect`` whenever ``action_id`` executes."""
        self._effects[action_id] = effect

    def validate(self, action: Action) -> tuple[bool, str]:
        return True, ""

    def execute(self, action: Action) -> Receipt:
        self._call_log.append(action)

        if action.id in self._effects:
            self._effects[action.id](action)

        if action.id in self._responses:
            return self._responses[action.id]

        return Receipt.success(
            adapter=self._name,
            action_id=action.id,
            output=self._default_output,
            return_code=0,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log, custom responses and side effects."""
        self._call_log.clear()
        self._responses.clear()
        self._effects.clear()
