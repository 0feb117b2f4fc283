"""Kiwi: fork and merge branches of a conversation.

A branch is an ordered log of messages.  Forking copies a prefix of one
branch into a new branch; merging interleaves two branches into a new
one.  Every copied message points back to its source.
"""

from kiwibranch._version import __version__

# Core entry point
from kiwibranch.kiwi import Kiwi

# Models
from kiwibranch.models.branch import BranchInfo, BranchKind, BranchSummary
from kiwibranch.models.message import (
    ORIGINAL_BRANCH_ID,
    ORIGINAL_MESSAGE_ID,
    MessageInfo,
    MessageMetadata,
    MessageRole,
)
from kiwibranch.models.results import CopyFailure, ForkResult, MergeResult
from kiwibranch.models.insight import InsightInfo

# Configuration
from kiwibranch.models.config import CopyIdMode, KiwiConfig, MissingCutoffPolicy

# Exceptions
from kiwibranch.exceptions import (
    BranchExistsError,
    BranchNotFoundError,
    CutoffNotFoundError,
    InvalidBranchVariantError,
    KiwiError,
    MessageNotFoundError,
    NotFoundError,
    RequestValidationError,
    StorageError,
)

__all__ = [
    "__version__",
    "Kiwi",
    "BranchInfo",
    "BranchKind",
    "BranchSummary",
    "MessageInfo",
    "MessageMetadata",
    "MessageRole",
    "ORIGINAL_BRANCH_ID",
    "ORIGINAL_MESSAGE_ID",
    "CopyFailure",
    "ForkResult",
    "MergeResult",
    "InsightInfo",
    "CopyIdMode",
    "KiwiConfig",
    "MissingCutoffPolicy",
    "KiwiError",
    "RequestValidationError",
    "InvalidBranchVariantError",
    "NotFoundError",
    "BranchNotFoundError",
    "MessageNotFoundError",
    "CutoffNotFoundError",
    "BranchExistsError",
    "StorageError",
]
