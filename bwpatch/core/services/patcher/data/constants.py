"""
L0 Data — Module-level constants.

Pure data. No logic. No imports beyond stdlib.
"""

from __future__ import annotations

# ── Pinned patcher artifact ─────────────────────────────────────
#
# The bytecode patch itself is performed by bitwig-theme-editor.
# Its checksum is pinned: a cached or downloaded copy that does not
# hash to this value is deleted and never executed.
PATCHER_VERSION = "2.2.0"
PATCHER_JAR_NAME = f"bitwig-theme-editor-{PATCHER_VERSION}.jar"
PATCHER_JAR_URL = (
    "https://github.com/Berikai/bitwig-theme-editor/releases/download/"
    f"{PATCHER_VERSION}/{PATCHER_JAR_NAME}"
)
PATCHER_JAR_SHA256 = "a3d90aed113cc92cc9f2c8ebb086a54f82f6e7edf70afac34d3fe378e9732e2d"

# ── Persisted layout ────────────────────────────────────────────
APP_DIR_NAME = "bitwig-theme-manager"
PATCHER_SUBDIR = "patcher"
BACKUPS_SUBDIR = "backups"
AUDIT_FILE = "audit.ndjson"

# Sidecars next to the artifact (bitwig.jar → bitwig.patched, ...)
MARKER_SUFFIX = ".patched"
SIMPLE_BACKUP_SUFFIX = ".backup"            # bitwig.jar.backup
CHECKSUM_SUFFIX = ".sha256"                 # <backup>.sha256
BACKUP_EXT = ".jar"
MARKER_CONTENT = "patched"

# ── Tool output ─────────────────────────────────────────────────
# Lower-cased substrings the patcher prints when the jar already
# carries its patch.
ALREADY_PATCHED_MARKERS: tuple[str, ...] = ("already patched",)

# ── Transfer programs, in preference order ─────────────────────
# {url} and {dest} are filled in by the acquirer.
TRANSFER_PROGRAMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("curl", ("-L", "-f", "-sS", "-o", "{dest}", "{url}")),
    ("wget", ("-q", "-O", "{dest}", "{url}")),
)

# ── Elevation result classification ────────────────────────────
PKEXEC_DISMISSED_CODE = 126
WINDOWS_UAC_CANCELLED_CODE = 1223

# Exit code generated scripts use for a failed checksum gate
SCRIPT_CHECKSUM_EXIT = 65

# ── Default timeouts (seconds) ──────────────────────────────────
DEFAULT_TIMEOUTS: dict[str, int] = {
    "probe": 15,         # java -version, which
    "download": 300,     # curl / wget
    "tool": 600,         # java -jar patcher
    "elevation": 900,    # pkexec / RunAs, includes time spent in the prompt
}

# ── Java runtime layouts ────────────────────────────────────────
#
# Relative locations of the JRE Bitwig ships, checked against every
# ancestor of the target jar and against the known install roots.
BUNDLED_JRE_LAYOUTS: dict[str, tuple[str, ...]] = {
    "linux": (
        "lib/jre/bin/java",
        "jre/bin/java",
    ),
    "darwin": (
        "Contents/PlugIns/jre/Contents/Home/bin/java",
        "Contents/Resources/app/lib/jre/bin/java",
    ),
    "windows": (
        "jre/bin/java.exe",
        "lib/jre/bin/java.exe",
        "runtime/bin/java.exe",
    ),
}

# Bitwig install roots. "~" expands against the context's home,
# "%VAR%" against the context's environment.
BITWIG_INSTALL_ROOTS: dict[str, tuple[str, ...]] = {
    "linux": (
        "/opt/bitwig-studio",
        "/usr/share/bitwig-studio",
        "~/.local/share/bitwig-studio",
    ),
    "darwin": (
        "/Applications/Bitwig Studio.app",
        "~/Applications/Bitwig Studio.app",
    ),
    "windows": (
        "%ProgramFiles%/Bitwig Studio",
    ),
}

# Vendor JDK roots; each child directory is a candidate JAVA_HOME.
JDK_INSTALL_ROOTS: dict[str, tuple[str, ...]] = {
    "linux": (
        "/usr/lib/jvm",
    ),
    "darwin": (
        "/Library/Java/JavaVirtualMachines",
    ),
    "windows": (
        "%ProgramFiles%/Java",
        "%ProgramFiles%/Eclipse Adoptium",
        "%ProgramFiles%/Microsoft",
        "%ProgramFiles%/Amazon Corretto",
        "%ProgramFiles%/Zulu",
        "%ProgramFiles%/BellSoft",
        "%ProgramFiles%/OpenJDK",
        "%ProgramFiles(x86)%/Java",
    ),
}

# Where java lives inside a JAVA_HOME-style directory.
JAVA_HOME_LAYOUTS: dict[str, tuple[str, ...]] = {
    "linux": ("bin/java",),
    "darwin": ("Contents/Home/bin/java", "bin/java"),
    "windows": ("bin/java.exe",),
}

WINDOWS_DEFAULT_ENV: dict[str, str] = {
    "ProgramFiles": "C:\\Program Files",
    "ProgramFiles(x86)": "C:\\Program Files (x86)",
}
