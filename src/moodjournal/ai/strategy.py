"""Strategy cascade: ordered first-success-wins trial of access combinations.

A strategy is one (access path, API version, model id) combination. The
cascade walks an ordered list of strategies, one attempt each, strictly in
sequence, and stops at the first attempt that yields non-empty text.
Failures are classified and the cascade moves on; when the list is
exhausted the last classified failure is returned.

There is no retry of a single strategy and no delay between attempts.
Attempts are never run in parallel, since each one is a metered request.

Example:
    >>> strategies = build_strategies(
    ...     [AccessPath.SDK, AccessPath.REST], ["v1beta", "v1"], ["gemini-1.5-flash"]
    ... )
    >>> [s.label for s in strategies]
    ['sdk/v1beta/gemini-1.5-flash', 'sdk/v1/gemini-1.5-flash',
     'rest/v1beta/gemini-1.5-flash', 'rest/v1/gemini-1.5-flash']
    >>> cascade = StrategyCascade({AccessPath.REST: rest_transport})
    >>> result = cascade.run("Hello", strategies)
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from moodjournal.ai.errors import ErrorKind, classify
from moodjournal.ai.transports import Transport
from moodjournal.config import AccessPath
from moodjournal.utils.logging import get_logger

logger = get_logger(__name__)


# =============================================================================
# Data Model
# =============================================================================


@dataclass(frozen=True)
class Strategy:
    """One concrete combination the cascade may attempt."""

    access_path: AccessPath
    api_version: str
    model_id: str

    @property
    def label(self) -> str:
        return f"{self.access_path.value}/{self.api_version}/{self.model_id}"


@dataclass(frozen=True)
class AttemptSuccess:
    """A strategy produced non-empty text.

    Attributes:
        text: The completion. Never empty or whitespace-only.
        strategy: The winning strategy.
        attempts: How many strategies were attempted, including this one.
    """

    text: str
    strategy: Strategy
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class AttemptFailure:
    """The cascade ended without text.

    Attributes:
        kind: Classification of the last failure.
        raw_message: Provider/transport text of the last failure. Internal only.
        strategy: The last attempted strategy, or None if nothing was attempted.
        attempts: How many strategies were attempted.
    """

    kind: ErrorKind
    raw_message: str
    strategy: Strategy | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return False


AttemptResult = Union[AttemptSuccess, AttemptFailure]


def build_strategies(
    access_paths: Iterable[AccessPath],
    api_versions: Iterable[str],
    model_ids: Iterable[str],
) -> list[Strategy]:
    """Cartesian product in declared order: path, then version, then model."""
    return [
        Strategy(access_path=path, api_version=version, model_id=model)
        for path, version, model in itertools.product(
            list(access_paths), list(api_versions), list(model_ids)
        )
    ]


# =============================================================================
# Cascade
# =============================================================================


class StrategyCascade:
    """Walks strategies in order until one yields text.

    Args:
        transports: Transport per access path. A path with no transport
            (e.g. the client library failed to initialise) is skipped.
        short_circuit_on_invalid_configuration: Stop at the first
            INVALID_CONFIGURATION failure instead of trying the rest.
    """

    def __init__(
        self,
        transports: Mapping[AccessPath, Transport],
        short_circuit_on_invalid_configuration: bool = False,
    ) -> None:
        self._transports = dict(transports)
        self._short_circuit = short_circuit_on_invalid_configuration

    @property
    def access_paths(self) -> list[AccessPath]:
        return list(self._transports)

    def run(self, prompt: str, strategies: Iterable[Strategy]) -> AttemptResult:
        """Attempt strategies in order and return the first success.

        Args:
            prompt: The prompt text.
            strategies: Ordered strategies.

        Returns:
            AttemptSuccess for the first non-empty completion, otherwise the
            AttemptFailure of the last attempted strategy.
        """
        ordered = list(strategies)
        runnable = [s for s in ordered if s.access_path in self._transports]
        skipped = {s.access_path for s in ordered} - set(self._transports)
        for path in sorted(skipped, key=lambda p: p.value):
            logger.info(f"Access path '{path.value}' unavailable, skipping its strategies")

        last_failure = AttemptFailure(
            kind=ErrorKind.INVALID_CONFIGURATION,
            raw_message="No access path available for any strategy",
        )
        if not runnable:
            return last_failure

        total = len(runnable)

        for index, strategy in enumerate(runnable, start=1):
            transport = self._transports[strategy.access_path]
            started = time.perf_counter()

            try:
                text = transport.generate(prompt, strategy.api_version, strategy.model_id)
            except Exception as e:
                kind = classify(str(e), e)
                last_failure = AttemptFailure(
                    kind=kind,
                    raw_message=str(e),
                    strategy=strategy,
                    attempts=index,
                )
                logger.warning(
                    f"Attempt {index}/{total} {strategy.label} failed: "
                    f"{kind.value} ({type(e).__name__}) in {_elapsed_ms(started):.0f}ms"
                )
                if self._short_circuit and kind is ErrorKind.INVALID_CONFIGURATION:
                    logger.info("Stopping cascade on invalid configuration")
                    return last_failure
                continue

            if not text or not text.strip():
                last_failure = AttemptFailure(
                    kind=ErrorKind.EMPTY_RESPONSE,
                    raw_message="Provider returned no text",
                    strategy=strategy,
                    attempts=index,
                )
                logger.warning(
                    f"Attempt {index}/{total} {strategy.label} returned empty text "
                    f"in {_elapsed_ms(started):.0f}ms"
                )
                continue

            logger.info(
                f"Attempt {index}/{total} {strategy.label} succeeded "
                f"in {_elapsed_ms(started):.0f}ms"
            )
            return AttemptSuccess(text=text, strategy=strategy, attempts=index)

        logger.error(f"All {total} strategies failed; last failure: {last_failure.kind.value}")
        return last_failure


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
