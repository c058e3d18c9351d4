"""Commit modes and the transaction state machine."""

from enum import Enum

import structlog

from ..errors import BackendOperationError, ConfigurationConflict, UnitOfWorkClosed
from ..results.models import Result
from ..scheduler.models import Schedule
from .backend import Backend
from .executor import ExecutionEngine

logger = structlog.get_logger(__name__)


class CommitMode(str, Enum):
    """How a commit treats the backend's transaction."""

    PLAIN = "plain"  # No rollback; dispatched buckets stay
    SAVEPOINT = "savepoint"  # Roll back everything on an aborting failure
    DRY_RUN = "dry_run"  # Always roll back


class TransactionState(str, Enum):
    """Lifecycle of one commit."""

    IDLE = "idle"
    RUNNING = "running"
    COMMITTED = "committed"
    ABORTED = "aborted"


class TransactionController:
    """Wraps one engine run with commit-mode semantics.

    A controller commits once; any later commit is rejected.
    """

    def __init__(self, backend: Backend | None):
        self.backend = backend
        self.state = TransactionState.IDLE
        self.mode: CommitMode | None = None

    @property
    def is_closed(self) -> bool:
        return self.state != TransactionState.IDLE

    def ensure_idle(self) -> None:
        """Reject use after a commit has started.

        Raises:
            UnitOfWorkClosed: If this controller already ran a commit.
        """
        if self.is_closed:
            raise UnitOfWorkClosed(
                f"Unit of work already {self.state.value}; it can commit only once"
            )

    @staticmethod
    def validate(mode: CommitMode, allow_partial_success: bool) -> None:
        """Check that a commit mode fits the options.

        Raises:
            ConfigurationConflict: If partial success is combined with a
                savepoint-backed commit.
        """
        if mode == CommitMode.SAVEPOINT and allow_partial_success:
            raise ConfigurationConflict(
                "allow_partial_success cannot be combined with a transactional "
                "commit: record failures would never trigger the rollback"
            )

    def commit(
        self,
        engine: ExecutionEngine,
        schedule: Schedule,
        mode: CommitMode = CommitMode.PLAIN,
    ) -> Result:
        """Run the engine once under a commit mode.

        Args:
            engine: The engine to run.
            schedule: The buckets to execute.
            mode: The commit mode.

        Returns:
            The result of the run.

        Raises:
            UnitOfWorkClosed: If this controller already committed.
            ConfigurationConflict: If the mode conflicts with the engine options.
            BackendOperationError: If a record failure aborted the run; carries
                the partial result.
            BackendCallFailed: If the backend raised mid-run; the backend is
                rolled back to the savepoint when there is one.
        """
        self.ensure_idle()
        self.validate(mode, engine.allow_partial_success)

        self.mode = mode
        self.state = TransactionState.RUNNING
        savepoint = None

        logger.info(
            "commit_started",
            mode=mode.value,
            buckets=len(schedule),
            layers=schedule.layer_count,
        )

        try:
            if mode != CommitMode.PLAIN and self.backend is not None:
                savepoint = self.backend.savepoint()
            outcome = engine.run(schedule)
        except Exception:
            self.state = TransactionState.ABORTED
            self._rollback(savepoint)
            raise

        if outcome.aborted:
            self.state = TransactionState.ABORTED
            logger.warning(
                "commit_aborted",
                mode=mode.value,
                bucket=str(outcome.failed_bucket.key),
                rolled_back=savepoint is not None,
            )
            self._rollback(savepoint)
            first = outcome.errors[0] if outcome.errors else None
            raise BackendOperationError(
                f"{outcome.failed_bucket.key} failed: {first}"
                if first
                else f"{outcome.failed_bucket.key} failed",
                result=outcome.result,
                errors=outcome.errors,
            )

        if mode == CommitMode.DRY_RUN:
            self._rollback(savepoint)

        self.state = TransactionState.COMMITTED
        logger.info(
            "commit_finished",
            mode=mode.value,
            backend_calls=outcome.backend_calls,
            mocked_calls=outcome.mocked_calls,
            has_failures=outcome.result.has_failures,
        )
        return outcome.result

    def _rollback(self, savepoint) -> None:
        if savepoint is None:
            return
        self.backend.rollback(savepoint)
        logger.info("commit_rolled_back", mode=self.mode.value if self.mode else None)
