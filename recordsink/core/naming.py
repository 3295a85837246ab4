# ==============================================================================
# Filename Strategies
# ==============================================================================
"""
Strategies that map a batch to the name of its artifact.

A strategy is any callable `(Batch) -> str`. Decorators are plain functions
`(Strategy) -> Strategy` and compose in any order:

    strategy = decorate(SequenceRangeStrategy(), with_prefix("logs/raw/"), with_suffix(".gz"))
    strategy(batch)  # "logs/raw/100-102.gz"

Persisted layout: {prefix}{first}-{last}[.gz] or
{prefix}{yyyy-MM-dd-HH.mm.ss}-{md5hex}[.gz].
"""

import hashlib
from collections.abc import Callable
from datetime import UTC, datetime

from recordsink.core.models import Batch

FilenameStrategy = Callable[[Batch], str]
StrategyDecorator = Callable[[FilenameStrategy], FilenameStrategy]

GZIP_SUFFIX = ".gz"

TIMESTAMP_FORMAT = "%Y-%m-%d-%H.%M.%S"


class SequenceRangeStrategy:
    """
    Names an artifact after the sequence range it contains: "{first}-{last}".

    Re-running the same batch yields the same name, so a retried upload
    overwrites any partial object left by an earlier attempt.
    """

    def __call__(self, batch: Batch) -> str:
        return f"{batch.first_sequence}-{batch.last_sequence}"

    def __repr__(self) -> str:
        return "SequenceRangeStrategy()"


class TimestampStrategy:
    """
    Names an artifact by UTC wall-clock time plus a digest of its sequence range.

    Names sort chronologically. The md5 of first+last guards against two
    batches flushed within the same second. The name is NOT stable across
    retries; downstream steps rely on overwrite-safety instead.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None):
        """
        Args:
            clock: Returns the current time. Defaults to datetime.now(UTC).
        """
        self._clock = clock or (lambda: datetime.now(UTC))

    def __call__(self, batch: Batch) -> str:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(UTC)
        digest = hashlib.md5(
            (batch.first_sequence + batch.last_sequence).encode("utf-8")
        ).hexdigest()
        return f"{now.strftime(TIMESTAMP_FORMAT)}-{digest}"

    def __repr__(self) -> str:
        return "TimestampStrategy()"


# ==============================================================================
# Decorators
# ==============================================================================


def with_suffix(suffix: str) -> StrategyDecorator:
    """
    Decorator that appends `suffix` to a strategy's output unless already present.

    Args:
        suffix: Fixed suffix such as ".gz"

    Returns:
        Function wrapping a strategy
    """

    def decorator(strategy: FilenameStrategy) -> FilenameStrategy:
        def named(batch: Batch) -> str:
            name = strategy(batch)
            if not name.endswith(suffix):
                name += suffix
            return name

        return named

    return decorator


def with_prefix(prefix: str | None) -> StrategyDecorator:
    """
    Decorator that places a strategy's output under a logical directory.

    For example, a prefix of "logs/" writes every artifact into the logs
    directory of the bucket. An empty or None prefix leaves names unchanged.

    Args:
        prefix: Key prefix, usually ending in "/"

    Returns:
        Function wrapping a strategy
    """

    def decorator(strategy: FilenameStrategy) -> FilenameStrategy:
        if not prefix:
            return strategy

        def named(batch: Batch) -> str:
            return prefix + strategy(batch)

        return named

    return decorator


gzip_wrapping = with_suffix(GZIP_SUFFIX)


def decorate(strategy: FilenameStrategy, *decorators: StrategyDecorator) -> FilenameStrategy:
    """Apply decorators to a strategy, innermost first."""
    for decorator in decorators:
        strategy = decorator(strategy)
    return strategy


def get_strategy(name: str, clock: Callable[[], datetime] | None = None) -> FilenameStrategy:
    """
    Look up a base strategy by its configuration name.

    Args:
        name: "sequence" or "timestamp"
        clock: Optional clock for the timestamp strategy

    Raises:
        ValueError: If the name is unknown
    """
    match name:
        case "sequence":
            return SequenceRangeStrategy()
        case "timestamp":
            return TimestampStrategy(clock)
        case _:
            raise ValueError(
                f"Unknown filename strategy: '{name}'. Valid options are: sequence, timestamp"
            )
