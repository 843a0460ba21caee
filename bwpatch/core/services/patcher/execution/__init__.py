"""
L4 Execution — ``__init__.py`` re-exports the side-effecting helpers
that do not depend on the model layer.

These functions WRITE to the system: subprocess calls, file copies,
marker writes, temp scripts.
"""

from bwpatch.core.services.patcher.execution.checksum import (  # noqa: F401
    calculate_checksum,
    checksum_bytes,
    read_checksum_file,
    verify_checksum,
    write_checksum_file,
)
from bwpatch.core.services.patcher.execution.markers import (  # noqa: F401
    remove_marker,
    write_marker,
)
from bwpatch.core.services.patcher.execution.subprocess_runner import (  # noqa: F401
    find_program,
    run_subprocess,
)
from bwpatch.core.services.patcher.execution.temp_files import (  # noqa: F401
    private_dir,
    remove_quietly,
    stage_copy,
    unique_id,
    write_private_script,
)
