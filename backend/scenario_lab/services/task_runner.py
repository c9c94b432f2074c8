"""Background analysis tasks.

Each task runs one synchronous engine on a worker thread and talks back over
its own message queue: zero or more ``progress`` messages, then exactly one
terminal ``success``, ``error`` or ``cancelled`` message. Cancelled and failed
tasks never commit a result.
"""
from __future__ import annotations

import logging
import queue
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from scenario_lab.analysis import (
    ModelInvoker,
    run_monte_carlo,
    run_scenario_triad,
    run_sensitivity,
    solve_for_target,
)
from scenario_lab.config import settings
from scenario_lab.errors import AnalysisCancelled, AnalysisError
from scenario_lab.models.analysis import SolverResult
from scenario_lab.models.simulation import SimulationConfig
from scenario_lab.models.task import (
    MessageType,
    SensitivityRequest,
    SimulationRequest,
    SolveRequest,
    TaskKind,
    TaskMessage,
    TaskSnapshot,
    TaskStatus,
    TriadRequest,
)

logger = logging.getLogger(__name__)

_PAYLOAD_MODELS = {
    TaskKind.sensitivity: SensitivityRequest,
    TaskKind.simulation: SimulationRequest,
    TaskKind.solve: SolveRequest,
    TaskKind.triad: TriadRequest,
}

_TERMINAL = (TaskStatus.succeeded, TaskStatus.failed, TaskStatus.cancelled)


class _Task:
    def __init__(self, kind: TaskKind, request: Any) -> None:
        self.id = uuid.uuid4().hex
        self.kind = kind
        self.request = request
        self.status = TaskStatus.pending
        self.progress = 0
        self.result: Any = None
        self.error: Optional[dict[str, Any]] = None
        self.messages: queue.Queue[TaskMessage] = queue.Queue()
        self.cancel_event = threading.Event()
        self.future: Optional[Future] = None
        self.lock = threading.Lock()

    def snapshot(self) -> TaskSnapshot:
        with self.lock:
            return TaskSnapshot(
                id=self.id,
                kind=self.kind,
                status=self.status,
                progress=self.progress,
                result=self.result,
                error=self.error,
            )

    @property
    def finished(self) -> bool:
        return self.status in _TERMINAL


class TaskRunner:
    """Thread pool of analysis tasks keyed by id.

    Only the newest ``max_retained`` finished tasks are kept; older ones are
    dropped and their ids become unknown.
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        invoker: Optional[ModelInvoker] = None,
        max_retained: Optional[int] = None,
    ) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.MAX_TASK_WORKERS,
            thread_name_prefix="analysis",
        )
        self._invoker = invoker or ModelInvoker()
        self._max_retained = max_retained or settings.MAX_RETAINED_TASKS
        self._tasks: dict[str, _Task] = {}
        self._lock = threading.Lock()

    def submit(self, kind: TaskKind, payload: dict[str, Any]) -> str:
        """Validate ``payload`` for ``kind`` and queue the task.

        Raises:
            pydantic.ValidationError: the payload does not match the kind's request model.
        """
        kind = TaskKind(kind)
        request = _PAYLOAD_MODELS[kind].model_validate(payload)
        task = _Task(kind, request)
        with self._lock:
            self._tasks[task.id] = task
        task.future = self._executor.submit(self._run, task)
        logger.info("Task %s (%s) submitted", task.id, kind.value)
        return task.id

    def _get(self, task_id: str) -> _Task:
        with self._lock:
            return self._tasks[task_id]

    def get(self, task_id: str) -> TaskSnapshot:
        """Raises KeyError for unknown ids."""
        return self._get(task_id).snapshot()

    def messages(self, task_id: str) -> list[TaskMessage]:
        """Drain and return the messages posted since the last call."""
        task = self._get(task_id)
        out = []
        while True:
            try:
                out.append(task.messages.get_nowait())
            except queue.Empty:
                return out

    def cancel(self, task_id: str) -> TaskSnapshot:
        task = self._get(task_id)
        task.cancel_event.set()
        if task.future is not None and task.future.cancel():
            # never started
            self._finish(task, TaskStatus.cancelled, TaskMessage(task_id=task.id, type=MessageType.cancelled))
        return task.snapshot()

    def wait(self, task_id: str, timeout: Optional[float] = None) -> TaskSnapshot:
        task = self._get(task_id)
        if task.future is not None and not task.future.cancelled():
            task.future.result(timeout=timeout)
        return task.snapshot()

    def shutdown(self, wait: bool = True) -> None:
        """Cancel every task. Queued tasks finish as cancelled immediately."""
        with self._lock:
            tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel_event.set()
            if task.future is not None and task.future.cancel():
                self._finish(task, TaskStatus.cancelled, TaskMessage(task_id=task.id, type=MessageType.cancelled))
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def _finish(self, task: _Task, status: TaskStatus, message: TaskMessage, result: Any = None) -> None:
        with task.lock:
            if task.finished:
                return
            task.status = status
            task.error = message.error
            if status == TaskStatus.succeeded:
                task.result = result
                task.progress = 100
        task.messages.put(message)
        self._prune()

    def _prune(self) -> None:
        with self._lock:
            finished = [task_id for task_id, task in self._tasks.items() if task.finished]
            for task_id in finished[:-self._max_retained]:
                del self._tasks[task_id]
        if len(finished) > self._max_retained:
            logger.debug("Dropped %d finished tasks", len(finished) - self._max_retained)

    def _run(self, task: _Task) -> None:
        with task.lock:
            task.status = TaskStatus.running

        def on_progress(value: int) -> None:
            with task.lock:
                task.progress = value
            task.messages.put(TaskMessage(task_id=task.id, type=MessageType.progress, progress=value))

        try:
            if task.cancel_event.is_set():
                raise AnalysisCancelled("Task cancelled before start")
            result = self._handler(task.kind)(task.request, on_progress, task.cancel_event)
            if task.cancel_event.is_set():
                raise AnalysisCancelled("Task cancelled")
        except AnalysisCancelled:
            logger.info("Task %s cancelled", task.id)
            self._finish(task, TaskStatus.cancelled, TaskMessage(task_id=task.id, type=MessageType.cancelled))
            return
        except AnalysisError as exc:
            logger.warning("Task %s failed: %s", task.id, exc.message)
            self._finish(task, TaskStatus.failed, TaskMessage(task_id=task.id, type=MessageType.error, error=exc.to_dict()))
            return
        except Exception as exc:
            logger.exception("Task %s crashed", task.id)
            error = {"error": type(exc).__name__, "message": str(exc), "context": {}}
            self._finish(task, TaskStatus.failed, TaskMessage(task_id=task.id, type=MessageType.error, error=error))
            return

        payload = result.model_dump(mode="json")
        logger.info("Task %s succeeded", task.id)
        self._finish(
            task, TaskStatus.succeeded,
            TaskMessage(task_id=task.id, type=MessageType.success, progress=100, result=payload),
            result=payload,
        )

    def _handler(self, kind: TaskKind) -> Callable:
        invoker = self._invoker

        def sensitivity(req: SensitivityRequest, on_progress, cancel_event):
            return run_sensitivity(
                req.scenario, req.config, invoker=invoker, on_progress=on_progress,
                cancel_event=cancel_event, include_outputs=req.include_outputs,
            )

        def simulation(req: SimulationRequest, on_progress, cancel_event):
            return run_monte_carlo(
                req.scenario, req.config or SimulationConfig(), invoker=invoker,
                on_progress=on_progress, cancel_event=cancel_event,
            )

        def solve(req: SolveRequest, on_progress, cancel_event):
            value = solve_for_target(req.scenario, req.config, invoker=invoker)
            on_progress(100)
            return SolverResult(
                input_variable=req.config.input_variable,
                value=value,
                target_kpi=req.config.target_kpi,
                target_value=req.config.target_value,
            )

        def triad(req: TriadRequest, on_progress, cancel_event):
            result = run_scenario_triad(req.scenario, req.stress_pct, invoker=invoker)
            on_progress(100)
            return result

        return {
            TaskKind.sensitivity: sensitivity,
            TaskKind.simulation: simulation,
            TaskKind.solve: solve,
            TaskKind.triad: triad,
        }[kind]


task_runner = TaskRunner()
