"""
L5 Orchestration — the executors that sequence the lower layers.
"""

from bwpatch.core.services.patcher.orchestration.patch import (  # noqa: F401
    PatchExecutor,
    PatchOutcome,
    tool_command,
)
from bwpatch.core.services.patcher.orchestration.policies import (  # noqa: F401
    BACKUP_POLICIES,
    BackupPolicy,
    RequiredBackupPolicy,
    get_backup_policy,
)
from bwpatch.core.services.patcher.orchestration.restore import (  # noqa: F401
    RestoreExecutor,
    RestoreOutcome,
)
