# luaubuild/core/graph/executor.py
"""
Parallel execution of a finalized step graph.

Only the transitive closure of the requested steps runs. A step is submitted
once every predecessor succeeded. When a step fails, its transitive
dependents are marked dependency_failure and never submitted; unrelated
branches keep going. No step is ever retried.
"""
from __future__ import annotations

import concurrent.futures
import os
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from luaubuild.core.domain.exceptions import BuildError
from luaubuild.core.graph.build import Build
from luaubuild.core.graph.step import Step, StepState
from luaubuild.shared.telemetry import get_tracer

logger = structlog.get_logger()
tracer = get_tracer(__name__)


@dataclass
class BuildSummary:
    succeeded: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    duration: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


def default_workers() -> int:
    return min(32, max(1, (os.cpu_count() or 4)))


def collect_closure(requested: Sequence[Step]) -> List[Step]:
    """Requested steps and everything they depend on, dependencies first."""
    order: List[Step] = []
    seen: set = set()
    for root in requested:
        stack = [(root, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if id(node) in seen:
                continue
            seen.add(id(node))
            stack.append((node, True))
            for dep in reversed(node.dependencies):
                if id(dep) not in seen:
                    stack.append((dep, False))
    return order


def _make_step(step: Step) -> None:
    with tracer.start_as_current_span(f"step:{step.name}") as span:
        span.set_attribute("luaubuild.step.kind", step.kind.value)
        step.make()


def make(b: Build, requested: Sequence[Step], max_workers: Optional[int] = None) -> BuildSummary:
    b.finalize()
    start = time.time()
    summary = BuildSummary()

    steps = collect_closure(requested)
    # Every invocation starts clean; nothing carries over from an earlier make().
    for s in steps:
        s.state = StepState.PENDING
        s.error = None
    pending: Dict[int, int] = {id(s): len(s.dependencies) for s in steps}
    dependents: Dict[int, List[Step]] = {id(s): [] for s in steps}
    for s in steps:
        for dep in s.dependencies:
            dependents[id(dep)].append(s)

    def skip_dependents(failed: Step) -> None:
        stack = list(dependents[id(failed)])
        while stack:
            d = stack.pop()
            if d.state is not StepState.PENDING:
                continue
            d.state = StepState.DEPENDENCY_FAILURE
            summary.skipped.append(d.name)
            logger.warning("step_skipped", step=d.name, reason=f"dependency '{failed.name}' failed")
            stack.extend(dependents[id(d)])

    ready: List[Step] = [s for s in steps if not s.dependencies]
    workers = max_workers or default_workers()
    logger.info("build_started", steps=len(steps), workers=workers, target=b.target.triple,
                optimize=b.target.optimize.value)

    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        running: Dict[concurrent.futures.Future, Step] = {}

        while ready or running:
            while ready:
                s = ready.pop(0)
                if s.state is not StepState.PENDING:
                    continue
                s.state = StepState.RUNNING
                logger.debug("step_started", step=s.name, kind=s.kind.value)
                running[executor.submit(_make_step, s)] = s

            if not running:
                break

            done, _ = concurrent.futures.wait(running, return_when=concurrent.futures.FIRST_COMPLETED)
            for future in done:
                s = running.pop(future)
                try:
                    future.result()
                except BuildError as e:
                    s.state = StepState.FAILURE
                    s.error = e.message
                    summary.failed.append((s.name, e.message))
                    logger.error("step_failed", step=s.name, error=e.message)
                    skip_dependents(s)
                    continue
                except Exception as e:
                    s.state = StepState.FAILURE
                    s.error = f"{type(e).__name__}: {e}"
                    summary.failed.append((s.name, s.error))
                    logger.exception("step_crashed", step=s.name)
                    skip_dependents(s)
                    continue

                s.state = StepState.SUCCESS
                summary.succeeded.append(s.name)
                logger.debug("step_succeeded", step=s.name)
                for d in dependents[id(s)]:
                    pending[id(d)] -= 1
                    if pending[id(d)] == 0 and d.state is StepState.PENDING:
                        ready.append(d)

    summary.duration = time.time() - start
    return summary
