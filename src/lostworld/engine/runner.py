"""Caller-side turn runner with re-entrancy guard and retry policy.

The turn controller makes exactly one oracle call per turn and reports
failures in its ``TurnResult``. ``TurnRunner`` is the layer a front end
talks to: it refuses to start a turn while another is in flight and
retries failed turns with exponential backoff (tenacity). Every retried
attempt is a full turn run, so each transport failure leaves its own
``type:turnFailure`` entry on the timeline.
"""

from __future__ import annotations

from collections.abc import Callable

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from lostworld.core.config import RetrySettings, get_settings
from lostworld.core.exceptions import TurnInProgressError
from lostworld.core.logging import get_logger
from lostworld.engine.turn_controller import FailureKind, TurnController, TurnResult


logger = get_logger(__name__)


class TurnRunner:
    """Runs turns one at a time, retrying failed ones.

    Attributes:
        controller: Turn controller doing the work.
        retry: Retry policy.
        retry_on: Failure kinds that trigger another attempt.
    """

    def __init__(
        self,
        controller: TurnController,
        *,
        retry: RetrySettings | None = None,
        retry_on: frozenset[FailureKind] = frozenset({FailureKind.TRANSPORT}),
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            controller: Turn controller.
            retry: Retry policy; the application settings by default.
            retry_on: Failure kinds worth retrying. Validation failures
                are not retried unless listed here.
            sleep: Replacement for ``time.sleep`` between attempts.
        """
        self.controller = controller
        self.retry = retry or get_settings().retry
        self.retry_on = retry_on
        self._sleep = sleep
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        """Whether a turn is currently running."""
        return self._in_flight

    def _should_retry(self, result: TurnResult) -> bool:
        return not result.succeeded and result.failure in self.retry_on

    def _before_sleep(self, state: RetryCallState) -> None:
        result: TurnResult = state.outcome.result()
        logger.warning(
            "Retrying failed turn",
            turn=result.turn,
            attempt=state.attempt_number,
            failure=result.failure,
            error=result.error,
        )

    def _retrying(self) -> Retrying:
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=self.retry.wait_min_seconds,
                max=self.retry.wait_max_seconds,
            ),
            retry=retry_if_result(self._should_retry),
            before_sleep=self._before_sleep,
            retry_error_callback=lambda state: state.outcome.result(),
            **kwargs,
        )

    def play_turn(self, player_action: str | None = None) -> TurnResult:
        """Run the current turn, retrying according to the policy.

        Args:
            player_action: What the player did this turn, if anything.

        Returns:
            The result of the last attempt.

        Raises:
            TurnInProgressError: If a turn is already running.
            TurnExecutionError: If applying effects fails unexpectedly.
        """
        if self._in_flight:
            raise TurnInProgressError(
                "A turn is already in progress",
                turn=self.controller.current_turn,
            )

        self._in_flight = True
        try:
            result = self._retrying()(self.controller.run_turn, player_action)
        finally:
            self._in_flight = False

        if not result.succeeded:
            logger.error(
                "Turn gave up",
                turn=result.turn,
                failure=result.failure,
                error=result.error,
            )
        return result


__all__ = [
    "TurnRunner",
]
