"""Plan execution.

The executor runs the steps of each environment strictly in sequence and
treats environments as independent units of work: a failure inside one
environment skips the rest of that environment only.

By default environments run one after another. Because `kubectl config
use-context` rewrites the shared kubeconfig, each environment's steps form
a critical section in that mode. With isolated contexts the executor never
switches the current context (every collaborator call carries an explicit
context anyway), so environments may run on a bounded worker pool.
"""

from __future__ import annotations

import contextlib
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path

from loguru import logger

from envdeploy.errors import (
    CommandTimeoutError,
    DeploymentError,
    ProbeError,
)

from .collaborators import ClusterManager, ReleaseManager, WorkloadManager
from .models import (
    SKIP_CANCELLED,
    SKIP_CLUSTER_MISSING,
    SKIP_RELEASE_MISSING,
    Environment,
    FailureKind,
    Plan,
    Step,
    StepKind,
    StepResult,
)
from .probes import ClusterProbe, NamespaceEnsurer, ReleaseProbe, check_result


class DeploymentExecutor:
    """Executes deployment plans against the external collaborators.

    Attributes:
        chart_path: Helm chart installed into every environment
        helm_timeout: Time helm waits for a release to become ready
        wait: Whether install/upgrade block until resources are ready
        max_workers: Environments processed at once (1 means sequential)
        isolated_contexts: Whether environments use isolated kube contexts
        deadline_seconds: Overall time limit after which unstarted steps are skipped
    """

    def __init__(
        self,
        clusters: ClusterManager,
        workloads: WorkloadManager,
        releases: ReleaseManager,
        *,
        chart_path: Path,
        helm_timeout: str = "5m",
        wait: bool = True,
        max_workers: int = 1,
        isolated_contexts: bool = False,
        deadline_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_result: Callable[[StepResult], None] | None = None,
        on_output: Callable[[Environment, str], None] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            clusters: Cluster manager (kind)
            workloads: Namespace/context manager (kubectl)
            releases: Release manager (helm)
            chart_path: Helm chart to install
            helm_timeout: helm --timeout value
            wait: Pass --wait to install/upgrade
            max_workers: Size of the environment worker pool
            isolated_contexts: Required for max_workers > 1
            deadline_seconds: Optional overall deadline for the whole plan
            clock: Monotonic clock, injectable for tests
            on_result: Called with every step result as soon as it is known
            on_output: Called with each line of helm output during
                       install/upgrade

        Raises:
            ValueError: If concurrency is requested without isolated contexts
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if max_workers > 1 and not isolated_contexts:
            raise ValueError(
                "Concurrent execution requires isolated contexts; "
                "switching the shared kubeconfig context is not thread safe"
            )

        self._workloads = workloads
        self._releases = releases
        self._cluster_probe = ClusterProbe(clusters)
        self._namespace_ensurer = NamespaceEnsurer(workloads)
        self._release_probe = ReleaseProbe(releases)

        self.chart_path = chart_path
        self.helm_timeout = helm_timeout
        self.wait = wait
        self.max_workers = max_workers
        self.isolated_contexts = isolated_contexts
        self.deadline_seconds = deadline_seconds

        self._clock = clock
        self._on_result = on_result
        self._on_output = on_output
        self._context_lock = threading.Lock()

        self._handlers: dict[StepKind, Callable[[Step], StepResult]] = {
            StepKind.ENSURE_CLUSTER: self._ensure_cluster,
            StepKind.SWITCH_CONTEXT: self._switch_context,
            StepKind.ENSURE_NAMESPACE: self._ensure_namespace,
            StepKind.INSTALL_OR_UPGRADE: self._install_or_upgrade,
            StepKind.UNINSTALL: self._uninstall,
        }

    # =========================================================================
    # Public Interface
    # =========================================================================

    def execute(self, plan: Plan) -> list[StepResult]:
        """Execute a plan.

        Args:
            plan: Plan to execute

        Returns:
            One result per step, in plan order
        """
        deadline_at = (
            self._clock() + self.deadline_seconds
            if self.deadline_seconds is not None
            else None
        )
        groups = [(env, plan.steps_for(env.name)) for env in plan.environments]
        logger.info(
            f"Executing {plan.mode.value} plan: {len(plan)} step(s) "
            f"across {len(groups)} environment(s)"
        )

        if self.max_workers == 1 or len(groups) <= 1:
            per_env = [
                self._run_environment(env, steps, deadline_at) for env, steps in groups
            ]
        else:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(groups)),
                thread_name_prefix="envdeploy",
            ) as pool:
                futures = [
                    pool.submit(self._run_environment, env, steps, deadline_at)
                    for env, steps in groups
                ]
                per_env = [f.result() for f in futures]

        return [result for env_results in per_env for result in env_results]

    # =========================================================================
    # Environment Loop
    # =========================================================================

    def _run_environment(
        self,
        env: Environment,
        steps: tuple[Step, ...],
        deadline_at: float | None,
    ) -> list[StepResult]:
        results: list[StepResult] = []
        skip_reason: str | None = None

        # Switch context, then operate, without another environment in between
        guard = (
            contextlib.nullcontext() if self.isolated_contexts else self._context_lock
        )
        with guard:
            for step in steps:
                if skip_reason is None and self._deadline_passed(deadline_at):
                    logger.warning(f"Deadline passed, cancelling remaining steps of {env.name}")
                    skip_reason = SKIP_CANCELLED

                if skip_reason is not None:
                    result = StepResult.skipped(step, skip_reason)
                else:
                    result = self._run_step(step)
                    if result.is_failed:
                        skip_reason = f"{step.kind.value} failed"
                    elif result.is_skipped and result.reason == SKIP_CLUSTER_MISSING:
                        skip_reason = SKIP_CLUSTER_MISSING

                results.append(result)
                if self._on_result:
                    self._on_result(result)

        return results

    def _deadline_passed(self, deadline_at: float | None) -> bool:
        return deadline_at is not None and self._clock() >= deadline_at

    def _run_step(self, step: Step) -> StepResult:
        """Run one step, converting deployment errors into a failed result."""
        handler = self._handlers[step.kind]
        try:
            result = handler(step)
        except ProbeError as e:
            result = StepResult.failed(step, _reason(e), FailureKind.PROBE)
        except CommandTimeoutError as e:
            result = StepResult.failed(step, _reason(e), FailureKind.TIMEOUT)
        except DeploymentError as e:
            result = StepResult.failed(step, _reason(e), FailureKind.COMMAND)

        if result.is_failed:
            logger.warning(result.describe())
        else:
            logger.info(result.describe())
        return result

    # =========================================================================
    # Step Handlers
    # =========================================================================

    def _ensure_cluster(self, step: Step) -> StepResult:
        created = self._cluster_probe.ensure(step.environment.cluster_name)
        return StepResult.success(step, "created" if created else "exists")

    def _switch_context(self, step: Step) -> StepResult:
        env = step.environment
        if not self._cluster_probe.exists(env.cluster_name):
            return StepResult.skipped(step, SKIP_CLUSTER_MISSING)

        if self.isolated_contexts:
            if not self._workloads.context_exists(env.context_name):
                raise ProbeError(f"Context {env.context_name} not found in kubeconfig")
            return StepResult.success(step, "verified")

        check_result(
            self._workloads.use_context(env.context_name),
            f"switch to context {env.context_name}",
        )
        return StepResult.success(step, "switched")

    def _ensure_namespace(self, step: Step) -> StepResult:
        env = step.environment
        created = self._namespace_ensurer.ensure(env.namespace, context=env.context_name)
        return StepResult.success(step, "created" if created else "exists")

    def _install_or_upgrade(self, step: Step) -> StepResult:
        env = step.environment
        state = self._release_probe.state(
            env.release_name, env.namespace, context=env.context_name
        )
        action = self._releases.upgrade if state.exists else self._releases.install
        verb = "upgrade" if state.exists else "install"

        on_output = partial(self._on_output, env) if self._on_output else None
        result = action(
            env.release_name,
            self.chart_path,
            env.namespace,
            value_files=[Path(env.values_ref)],
            wait=self.wait,
            timeout=self.helm_timeout,
            context=env.context_name,
            on_output=on_output,
        )
        check_result(result, f"{verb} release {env.release_name}")
        return StepResult.success(step, verb)

    def _uninstall(self, step: Step) -> StepResult:
        env = step.environment
        if not self._release_probe.exists(
            env.release_name, env.namespace, context=env.context_name
        ):
            return StepResult.skipped(step, SKIP_RELEASE_MISSING)

        check_result(
            self._releases.uninstall(
                env.release_name, env.namespace, context=env.context_name
            ),
            f"uninstall release {env.release_name}",
        )
        return StepResult.success(step, "uninstalled")


def _reason(error: DeploymentError) -> str:
    if error.details:
        return f"{error.message}: {error.details}"
    return error.message
