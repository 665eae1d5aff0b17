"""
Ordered multi-step operations with per-step failure policy.

A saga runs its steps in order. A failing required step stops the run and
raises ``SagaAborted``; a failing best-effort step is logged and skipped.
Steps that already ran are not undone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class StepPolicy(Enum):
    REQUIRED = "required"
    BEST_EFFORT = "best_effort"


class SagaAborted(Exception):
    """A required step failed; ``completed`` lists the steps already applied."""

    def __init__(self, step: str, cause: Exception, completed: list[str]):
        super().__init__(f"step {step!r} failed: {cause}")
        self.step = step
        self.cause = cause
        self.completed = completed


@dataclass
class SagaStep:
    name: str
    action: Callable[[], object]
    policy: StepPolicy = StepPolicy.REQUIRED


@dataclass
class SagaResult:
    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


@dataclass
class Saga:
    name: str
    steps: list[SagaStep] = field(default_factory=list)

    def required(self, name: str, action: Callable[[], object]) -> "Saga":
        self.steps.append(SagaStep(name, action, StepPolicy.REQUIRED))
        return self

    def best_effort(self, name: str, action: Callable[[], object]) -> "Saga":
        self.steps.append(SagaStep(name, action, StepPolicy.BEST_EFFORT))
        return self

    def run(self) -> SagaResult:
        result = SagaResult()
        for step in self.steps:
            try:
                step.action()
            except Exception as exc:
                if step.policy is StepPolicy.REQUIRED:
                    logger.error(
                        "[%s] required step %s failed after %s: %s",
                        self.name,
                        step.name,
                        result.completed or "no steps",
                        exc,
                    )
                    raise SagaAborted(step.name, exc, list(result.completed)) from exc
                logger.exception(
                    "[%s] best-effort step %s failed; continuing", self.name, step.name
                )
                result.skipped.append(step.name)
                continue
            result.completed.append(step.name)
        return result
