"""Install PowerShell-style modules straight from GitHub branches.

Lists a repository's branches, downloads a branch zipball, checks that it
carries a module descriptor at its root, and swaps it into the module
directory.
"""

from .cancel import CancelToken
from .cli import main
from .client import RepoClient, get_repo_client
from .errors import (
    CancelledError,
    CleanupError,
    ContentError,
    ErrorLog,
    FetchError,
    InstallError,
    TransportError,
    ValidationError,
)
from .models import BranchRecord, InstallResult, ModuleRecord, ModuleState
from .registry import ModuleRegistry

__all__ = [
    "main",
    "RepoClient",
    "get_repo_client",
    "CancelToken",
    "BranchRecord",
    "InstallResult",
    "ModuleRecord",
    "ModuleState",
    "ModuleRegistry",
    "ErrorLog",
    "FetchError",
    "TransportError",
    "ContentError",
    "ValidationError",
    "InstallError",
    "CancelledError",
    "CleanupError",
]

if __name__ == "__main__":
    main()
