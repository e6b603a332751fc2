"""
Per-resource fetch outcomes and the reducer that merges them into a view model.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from shared.logging import get_logger


logger = get_logger("dashboard.aggregate.reducer")


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Failed:
    reason: str
    stale_value: Any = None


@dataclass(frozen=True)
class Pending:
    pass


PENDING = Pending()

FetchResult = Union[Ok, Failed, Pending]


@dataclass
class AggregateViewModel:
    """Merged state of one aggregate.

    ``error`` reflects only the critical resource. Non-critical failures
    land in ``failures`` for diagnostics.
    """
    fields: Dict[str, Any] = field(default_factory=dict)
    critical: Optional[str] = None
    loading: bool = True
    error: Optional[str] = None
    is_refreshing: bool = False
    failures: Dict[str, str] = field(default_factory=dict)

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


@dataclass(frozen=True)
class FieldRule:
    """How the reducer treats one field."""
    name: str
    critical: bool
    default: Callable[[], Any]


def reduce_results(
    view: AggregateViewModel,
    rules: List[FieldRule],
    results: Dict[str, FetchResult],
) -> AggregateViewModel:
    """Fold settled results into ``view`` and return a new view model.

    A failed critical field keeps its previous value and sets ``error``.
    A failed non-critical field keeps the stale value it was serving, or
    falls back to its default, and is recorded in ``failures``. ``Pending``
    leaves the field as it was.
    """
    fields = dict(view.fields)
    failures = dict(view.failures)
    error = view.error

    for rule in rules:
        result = results.get(rule.name, PENDING)

        if isinstance(result, Ok):
            fields[rule.name] = result.value
            failures.pop(rule.name, None)
            if rule.critical:
                error = None
        elif isinstance(result, Failed):
            if rule.critical:
                error = result.reason
                if result.stale_value is not None:
                    fields[rule.name] = result.stale_value
            else:
                fields[rule.name] = result.stale_value if result.stale_value is not None else rule.default()
                failures[rule.name] = result.reason
                logger.warning("Non-critical resource failed", resource=rule.name, error=result.reason)

    return AggregateViewModel(
        fields=fields,
        critical=view.critical,
        loading=view.loading,
        error=error,
        is_refreshing=view.is_refreshing,
        failures=failures,
    )
