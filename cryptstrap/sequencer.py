"""Fail-fast runner for the ordered provisioning steps.

Steps run once each in the given order. The first failure stops the run and
is reported as ``StepFailure``; an interrupt or end of input inside a step is
reported as ``StepAborted``. Steps that already completed are left as they
are. Partitioning and encryption are destructive and are not unwound.
"""

from __future__ import annotations

import sys
import time
from typing import Iterable

from .errors import StepAborted, StepFailure
from .executil import error, trace
from .model import ProvisioningStep


def run_steps(steps: Iterable[ProvisioningStep], announce: bool = True) -> list[dict]:
    completed: list[dict] = []
    for step in steps:
        if announce:
            print(f"==> {step.name}", file=sys.stderr, flush=True)
        trace("sequencer.step.start", step=step.name)
        started = time.perf_counter()
        try:
            step.action()
        except (KeyboardInterrupt, EOFError) as exc:
            error("sequencer.step.aborted", step=step.name, kind=type(exc).__name__)
            raise StepAborted(step.name, exc, [c["name"] for c in completed]) from exc
        except Exception as exc:  # noqa: BLE001
            error("sequencer.step.failed", step=step.name, error=str(exc), kind=type(exc).__name__)
            raise StepFailure(step.name, exc, [c["name"] for c in completed]) from exc
        duration = time.perf_counter() - started
        trace("sequencer.step.done", step=step.name, dur=duration)
        completed.append({"name": step.name, "duration_sec": round(duration, 3)})
    return completed
