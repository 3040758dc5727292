"""
Execution of a sync plan against a target store
"""
from typing import Callable, Optional, Sequence

from tracksync.adapters.base import SyncTarget
from tracksync.common.exceptions import ApplyOperationError
from tracksync.common.logging import get_logger
from tracksync.sync.models import ApplyResult, OperationType, SyncOperation

logger = get_logger("SyncApply")

ProgressCallback = Callable[[int, int], None]


def _describe(operation: SyncOperation) -> str:
    kind = getattr(operation.type, "value", operation.type)
    return f"{kind} on record {operation.record_id}"


def _execute(operation: SyncOperation, target: SyncTarget) -> None:
    try:
        kind = OperationType(operation.type)
    except ValueError:
        raise ApplyOperationError(f"Unknown operation type: {operation.type!r}")

    if kind is OperationType.INSERT:
        target.insert(operation.record_id, operation.data)
    elif kind is OperationType.UPDATE:
        target.update(operation.record_id, operation.data)
    else:
        target.delete(operation.record_id)


def apply_sync_operations(
    operations: Sequence[SyncOperation],
    target: SyncTarget,
    on_progress: Optional[ProgressCallback] = None
) -> ApplyResult:
    """
    Apply operations one by one

    A failing operation is recorded and the remaining ones still run, so the
    batch may be partially applied.

    Args:
        operations: Plan from build_sync_operations
        target: Store receiving the writes (must be connected)
        on_progress: Called with (completed, total) after every operation

    Returns:
        ApplyResult with the per-operation errors and the applied count
    """
    errors = []
    applied = 0
    total = len(operations)

    for index, operation in enumerate(operations, start=1):
        try:
            _execute(operation, target)
            applied += 1
        except ApplyOperationError as e:
            errors.append(f"Failed to apply {_describe(operation)}: {e}")
            logger.warning(errors[-1])
        except Exception as e:
            errors.append(
                f"Unexpected error applying {_describe(operation)}: {e}"
            )
            logger.exception(errors[-1])

        if on_progress:
            on_progress(index, total)

    logger.info(f"Applied {applied}/{total} sync operations ({len(errors)} failed)")
    return ApplyResult(success=not errors, errors=errors, applied=applied)
