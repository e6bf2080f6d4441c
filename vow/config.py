"""
Configuration for vow.

Settings come from environment variables; the working-tree root comes
from an explicit path, git, or the current directory (in that order).
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

CHALLENGE_FILE = ".vow-challenge"
CONSENT_FILE = ".vow-consent"
COOLDOWN_FILE = ".vow-cooldown"
DEBUG_LOG_FILE = ".vow-debug.log"
RULES_FILE = "AGENT_VOW.md"

DEFAULT_COOLDOWN_MS = 5000

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str) -> bool:
    """Read a boolean flag from the environment.

    >>> import os
    >>> os.environ["VOW_TEST_FLAG"] = "True"
    >>> _env_flag("VOW_TEST_FLAG")
    True
    >>> os.environ["VOW_TEST_FLAG"] = "0"
    >>> _env_flag("VOW_TEST_FLAG")
    False
    >>> del os.environ["VOW_TEST_FLAG"]
    """
    return os.getenv(name, "").strip().lower() in _TRUTHY


def get_repo_root(cwd: Optional[str | Path] = None) -> Path:
    """Return the git top-level directory, or cwd when not inside a repo."""
    base = Path(cwd) if cwd else Path.cwd()
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=str(base),
            capture_output=True,
            text=True,
            timeout=5,
        )
        out = result.stdout.strip()
        if result.returncode == 0 and out:
            return Path(out)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("git rev-parse failed: %s", e)
    return base


@dataclass
class VowConfig:
    """Runtime settings for a vow invocation.

    Attributes:
        root: Working-tree root where the records live
        cooldown_ms: Stop-hook cooldown window after a successful consent
        debug: Append invocation details to the debug log
        rules_file: Explicit checklist path (overrides AGENT_VOW.md)
        use_default_rules: Fall back to the checklist bundled with the package
    """

    root: Path
    cooldown_ms: int = DEFAULT_COOLDOWN_MS
    debug: bool = False
    rules_file: Optional[Path] = None
    use_default_rules: bool = True

    @classmethod
    def from_env(cls, root: Optional[str | Path] = None) -> "VowConfig":
        """Build config from environment variables.

        Raises:
            ValueError: If VOW_COOLDOWN_MS is not a non-negative integer
        """
        raw_cooldown = os.getenv("VOW_COOLDOWN_MS", "").strip()
        cooldown_ms = DEFAULT_COOLDOWN_MS
        if raw_cooldown:
            try:
                cooldown_ms = int(raw_cooldown)
            except ValueError:
                raise ValueError(
                    f"VOW_COOLDOWN_MS must be an integer, got {raw_cooldown!r}"
                ) from None
            if cooldown_ms < 0:
                raise ValueError(f"VOW_COOLDOWN_MS must be >= 0, got {cooldown_ms}")

        rules_env = os.getenv("VOW_RULES_FILE", "").strip()

        return cls(
            root=Path(root) if root else get_repo_root(),
            cooldown_ms=cooldown_ms,
            debug=_env_flag("VOW_DEBUG"),
            rules_file=Path(rules_env) if rules_env else None,
            use_default_rules=not _env_flag("VOW_NO_DEFAULT_RULES"),
        )

    @property
    def debug_log_path(self) -> Path:
        return self.root / DEBUG_LOG_FILE
