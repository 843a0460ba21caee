"""
L1 Domain — pure helpers: error taxonomy, sidecar paths, quoting.

No I/O, no subprocess.
"""

from bwpatch.core.services.patcher.domain.errors import (  # noqa: F401
    AlreadyPatched,
    BackupNotFound,
    ChecksumMismatch,
    DownloadFailed,
    ElevationCancelled,
    ElevationFailed,
    InvalidInput,
    JarNotFound,
    JavaNotFound,
    MissingDependency,
    NotFound,
    NotPatched,
    PatchError,
    PermissionDenied,
    StepFailed,
    ToolExecutionFailed,
)
from bwpatch.core.services.patcher.domain.input_validation import (  # noqa: F401
    quote_posix,
    quote_powershell,
    reject_unsafe,
)
from bwpatch.core.services.patcher.domain.output_parsing import (  # noqa: F401
    reports_already_patched,
)
from bwpatch.core.services.patcher.domain.paths import (  # noqa: F401
    backup_namespace,
    checksum_path_for,
    marker_path,
    parse_backup_timestamp,
    simple_backup_path,
    simple_checksum_path,
    target_hash,
)
