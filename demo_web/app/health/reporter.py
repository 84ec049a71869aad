from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..observability.logging import get_logger

logger = get_logger("health")

# A check returns normally (or True) when healthy; it raises or returns False otherwise.
HealthCheckFunc = Callable[[], Optional[bool]]


class CheckResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    healthy: bool
    critical: bool
    message: str = ""
    checked_at: Optional[datetime] = None


class HealthStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    healthy: bool
    checked_at: Optional[datetime] = None
    checks: List[CheckResult] = Field(default_factory=list)


@dataclass(frozen=True)
class _RegisteredCheck:
    name: str
    func: HealthCheckFunc
    critical: bool


class HealthReporter:
    """
    Aggregates named liveness/readiness checks into one queryable status.

    Checks are evaluated by ``run_checks()`` (directly, or periodically via
    ``run_checkers()``) and the result is published as an immutable
    ``HealthStatus`` snapshot. Readers never block on evaluation.
    """

    def __init__(self) -> None:
        self._checks: Dict[str, _RegisteredCheck] = {}
        self._status = self._pending_status()

    def add_check(self, name: str, func: HealthCheckFunc, critical: bool = True) -> None:
        self._checks[name] = _RegisteredCheck(name=name, func=func, critical=critical)
        self._status = self._pending_status()

    @property
    def status(self) -> HealthStatus:
        return self._status

    @property
    def healthy(self) -> bool:
        return self._status.healthy

    def run_checks(self) -> HealthStatus:
        """Evaluate every registered check once and publish the new snapshot."""
        now = datetime.now(timezone.utc)
        results: List[CheckResult] = []

        for check in list(self._checks.values()):
            try:
                outcome = check.func()
            except Exception as exc:
                results.append(
                    CheckResult(
                        name=check.name,
                        healthy=False,
                        critical=check.critical,
                        message=str(exc) or exc.__class__.__name__,
                        checked_at=now,
                    )
                )
                continue

            ok = outcome is not False
            results.append(
                CheckResult(
                    name=check.name,
                    healthy=ok,
                    critical=check.critical,
                    message="ok" if ok else "check returned false",
                    checked_at=now,
                )
            )

        status = HealthStatus(
            healthy=_aggregate(results),
            checked_at=now,
            checks=results,
        )
        if status.healthy != self._status.healthy:
            logger.warning(
                "Health status changed",
                extra={
                    "healthy": status.healthy,
                    "failing": [r.name for r in results if not r.healthy],
                },
            )
        self._status = status
        return status

    async def run_checkers(self, interval: float = 15.0) -> None:
        """Run all checks every ``interval`` seconds until cancelled."""
        logger.info("Health checker started", extra={"interval_seconds": interval})
        try:
            while True:
                await asyncio.to_thread(self.run_checks)
                await asyncio.sleep(interval)
        finally:
            logger.info("Health checker stopped")

    def _pending_status(self) -> HealthStatus:
        results = [
            CheckResult(
                name=check.name,
                healthy=False,
                critical=check.critical,
                message="pending",
            )
            for check in self._checks.values()
        ]
        return HealthStatus(healthy=_aggregate(results), checks=results)


def _aggregate(results: List[CheckResult]) -> bool:
    return all(r.healthy for r in results if r.critical)
