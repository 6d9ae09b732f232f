"""End-to-end unfolding test workflows."""

from toyunfold.workflows.unfold_test import (
    RunContext,
    RunStatus,
    Stage,
    UnfoldTestConfig,
    run_unfold_test,
    test,
    train,
    unfold,
)

__all__ = [
    "RunContext",
    "RunStatus",
    "Stage",
    "UnfoldTestConfig",
    "run_unfold_test",
    "test",
    "train",
    "unfold",
]
