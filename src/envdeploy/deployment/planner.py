"""Turns the environment registry into an ordered plan of steps."""

from __future__ import annotations

from collections.abc import Sequence

from .models import Environment, Plan, PlanMode, Step, StepKind

# Order within an environment is significant: the context switch follows
# cluster existence and precedes every namespace/release operation.
STEPS_BY_MODE: dict[PlanMode, tuple[StepKind, ...]] = {
    PlanMode.INSTALL: (
        StepKind.ENSURE_CLUSTER,
        StepKind.SWITCH_CONTEXT,
        StepKind.ENSURE_NAMESPACE,
        StepKind.INSTALL_OR_UPGRADE,
    ),
    PlanMode.UNINSTALL: (
        StepKind.SWITCH_CONTEXT,
        StepKind.UNINSTALL,
    ),
    PlanMode.STATUS: (StepKind.SWITCH_CONTEXT,),
}


def build_plan(environments: Sequence[Environment], mode: PlanMode) -> Plan:
    """Build the step sequence for the given environments.

    Pure and deterministic: no I/O, and the same input always yields the
    same plan. Whether a cluster exists is a runtime fact, so uninstall
    plans include every environment and the executor skips missing ones.

    Args:
        environments: Environments in registry order
        mode: What the plan is for

    Returns:
        The plan, grouped by environment in the given order

    Raises:
        ValueError: If two environments share a name
    """
    names = [env.name for env in environments]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ValueError(f"Duplicate environment names: {', '.join(duplicates)}")

    kinds = STEPS_BY_MODE[mode]
    return Plan(
        mode=mode,
        steps=tuple(Step(kind, env) for env in environments for kind in kinds),
    )
