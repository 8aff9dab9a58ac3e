"""
Dependency-respecting runner for provisioning steps.

A `DeploymentPlan` is a DAG of named `Step`s. Each step is gated by a
boolean and receives the outputs of the steps it depends on. Steps whose
dependencies have all reached a terminal state are started together, so
independent steps run concurrently when an executor is supplied.
"""

import time
import pulumi
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait
from dataclasses import dataclass, field
from enum import Enum
from graphlib import TopologicalSorter
from typing import Any, Callable, Dict, List, Optional


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class StepFailedError(Exception):
    def __init__(self, step_name: str, cause: BaseException):
        super().__init__(f"Step '{step_name}' failed: {cause}")
        self.step_name = step_name
        self.cause = cause


@dataclass
class Step:
    name: str
    action: Callable[[Dict[str, Any]], Any]
    depends_on: List[str] = field(default_factory=list)
    enabled: bool = True


@dataclass
class StepResult:
    name: str
    status: StepStatus
    output: Any = None
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    error: Optional[BaseException] = None


class DeploymentPlan:
    def __init__(self):
        self.steps: Dict[str, Step] = {}
        self.results: Dict[str, StepResult] = {}

    def add_step(self, step: Step) -> Step:
        if step.name in self.steps:
            raise ValueError(f"Step '{step.name}' is already part of the plan")
        self.steps[step.name] = step
        return step

    def _sorter(self) -> TopologicalSorter:
        sorter = TopologicalSorter()
        for step in self.steps.values():
            for dep in step.depends_on:
                if dep not in self.steps:
                    raise ValueError(f"Step '{step.name}' depends on unknown step '{dep}'")
            sorter.add(step.name, *step.depends_on)
        # Raises graphlib.CycleError, a ValueError
        sorter.prepare()
        return sorter

    def order(self) -> List[List[str]]:
        """Return the steps grouped into waves that may run side by side."""
        sorter = self._sorter()
        waves = []
        while sorter.is_active():
            ready = sorted(sorter.get_ready())
            waves.append(ready)
            sorter.done(*ready)
        return waves

    def _inputs(self, step: Step, results: Dict[str, StepResult]) -> Dict[str, Any]:
        return {dep: results[dep].output for dep in step.depends_on}

    def _run(self, step: Step, inputs: Dict[str, Any]) -> StepResult:
        result = StepResult(name=step.name, status=StepStatus.SUCCEEDED, started_at=time.monotonic())
        try:
            result.output = step.action(inputs)
            pulumi.log.info(f"Step '{step.name}' completed")
        except Exception as e:
            result.status = StepStatus.FAILED
            result.error = e
        result.finished_at = time.monotonic()
        return result

    def _skip(self, step: Step) -> StepResult:
        pulumi.log.info(f"Skipping step '{step.name}': disabled by its feature flags")
        now = time.monotonic()
        return StepResult(name=step.name, status=StepStatus.SKIPPED, started_at=now, finished_at=now)

    def execute(self, executor: Optional[Executor] = None) -> Dict[str, StepResult]:
        """Run every step after its dependencies.

        Without an executor the steps run inline on the calling thread, one
        wave after the other. The first failure stops further scheduling and
        is raised as `StepFailedError` once running steps have finished.
        """
        sorter = self._sorter()
        results: Dict[str, StepResult] = {}
        self.results = results
        pending: Dict[Future, str] = {}
        failed: Optional[StepResult] = None

        while sorter.is_active() and failed is None:
            for name in sorted(sorter.get_ready()):
                step = self.steps[name]
                if not step.enabled:
                    results[name] = self._skip(step)
                    sorter.done(name)
                    continue

                pulumi.log.info(f"Starting step '{name}'")
                inputs = self._inputs(step, results)
                if executor is None:
                    result = self._run(step, inputs)
                    results[name] = result
                    if result.status is StepStatus.FAILED:
                        failed = result
                        break
                    sorter.done(name)
                else:
                    pending[executor.submit(self._run, step, inputs)] = name

            if executor is None or not pending:
                continue

            done, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in done:
                name = pending.pop(future)
                result = future.result()
                results[name] = result
                if result.status is StepStatus.FAILED:
                    failed = failed or result
                else:
                    sorter.done(name)

        # Let in-flight steps finish before reporting
        if pending:
            for future in wait(pending).done:
                name = pending.pop(future)
                results[name] = future.result()

        if failed is not None:
            pulumi.log.error(f"Step '{failed.name}' failed: {failed.error}")
            raise StepFailedError(failed.name, failed.error) from failed.error

        return results
