"""Per-invocation logging helpers.

Every module keeps its own ``logger = logging.getLogger(__name__)``. What
changes per invocation is the *identity* a message is about, so components
never reach for a shared, mutable logging context: the executor builds one
TargetLoggerAdapter per call and hands it down explicitly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, MutableMapping, Tuple

from jobscaler.shared.models import ScaleTarget


class TargetLoggerAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter carrying the target identity as structured fields.

    The fields are attached to every record (``record.scaledjob_name`` etc.)
    for structured handlers, and rendered as ``key=value`` pairs at the end
    of the message for plain text handlers. Extra per-call fields go through
    ``fields=``::

        log.info("Created jobs", fields={"count": 2})
        # Created jobs scaledJob.Name=etl scaledJob.Namespace=batch count=2
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields: Dict[str, Any] = dict(self.extra or {})
        fields.update(kwargs.pop("fields", None) or {})

        record_extra = dict(kwargs.get("extra") or {})
        record_extra.setdefault("scaledjob_name", fields.get("scaledJob.Name"))
        record_extra.setdefault("scaledjob_namespace", fields.get("scaledJob.Namespace"))
        record_extra.setdefault("fields", fields)
        kwargs["extra"] = record_extra

        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        return (f"{msg} {rendered}" if rendered else msg), kwargs

    def with_fields(self, **fields: Any) -> "TargetLoggerAdapter":
        """A child adapter with additional permanent fields."""
        merged = dict(self.extra or {})
        merged.update(fields)
        return TargetLoggerAdapter(self.logger, merged)


def target_logger(logger: logging.Logger, target: ScaleTarget) -> TargetLoggerAdapter:
    """Build the adapter for one invocation against ``target``."""
    return TargetLoggerAdapter(
        logger,
        {"scaledJob.Name": target.name, "scaledJob.Namespace": target.namespace},
    )
