"""
Checklist resolution and message rendering.

Looks for the checklist in priority order:
  1. $VOW_RULES_FILE
  2. AGENT_VOW.md at the working-tree root
  3. The default bundled with the package (unless disabled)

No checklist (or a blank one) means there is nothing to enforce.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vow.config import CONSENT_FILE, RULES_FILE, VowConfig

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent / "data"
DEFAULT_RULES = _DATA_DIR / RULES_FILE

HEADER = (
    "# ⚠️ STOP - AI ACCOUNTABILITY CHECK\n\n"
    "Before continuing, you need to stop and evaluate yourself with the rules below:\n\n"
    "---\n\n"
)

CODE_TOKEN_RE = re.compile(r"\*\*VALIDATION CODE\*\*: `(\d+)`")


@dataclass(frozen=True)
class Rules:
    text: str
    source: Path


def _read(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read rules file %s: %s", path, e)
        return None


def resolve_rules(config: VowConfig) -> Optional[Rules]:
    """Return the active checklist, or None if there's nothing to enforce.

    >>> import tempfile
    >>> d = Path(tempfile.mkdtemp())
    >>> _ = (d / "AGENT_VOW.md").write_text("- [ ] Tests pass", encoding="utf-8")
    >>> resolve_rules(VowConfig(root=d)).text
    '- [ ] Tests pass'
    >>> resolve_rules(VowConfig(root=Path(tempfile.mkdtemp()), use_default_rules=False)) is None
    True
    """
    candidates = []
    if config.rules_file is not None:
        rules_file = config.rules_file
        if not rules_file.is_absolute():
            rules_file = config.root / rules_file
        candidates.append(rules_file)
    candidates.append(config.root / RULES_FILE)
    if config.use_default_rules:
        candidates.append(DEFAULT_RULES)

    for path in candidates:
        text = _read(path)
        if text is None:
            continue
        if not text.strip():
            # An explicitly blank checklist turns enforcement off
            logger.debug("Rules file %s is blank", path)
            return None
        return Rules(text=text, source=path)
    return None


def render_challenge(rules_text: str, code: int) -> str:
    """Full message shown when a challenge is issued."""
    footer = (
        "\n\n---\n\n"
        "## CONSENT INSTRUCTIONS\n\n"
        "If you agree with all applicable items above:\n\n"
        "1. **Review**: Honestly evaluate yourself against each rule\n"
        "2. **Acknowledge**: Inform the user that you have reviewed the rules\n"
        "3. **Consent**: Run `vow consent <code>` with the validation code\n"
        "4. **Retry**: After providing consent, retry the blocked command\n\n"
        f"**VALIDATION CODE**: `{code}`\n\n"
        f"Run `vow consent {code}` (or create a file named `{CONSENT_FILE}` "
        f"containing exactly: `{code}`)\n\n"
        f"⚠️ **IMPORTANT**: Never create {CONSENT_FILE} in advance. "
        "Always evaluate yourself first!"
    )
    return HEADER + rules_text + footer


def render_rules(rules_text: str) -> str:
    """Checklist as shown by ``vow rules``: same framing, no code."""
    footer = (
        "\n\n---\n\n"
        "## CONSENT INSTRUCTIONS\n\n"
        "When these rules are displayed during a vow check:\n\n"
        "1. **Review**: Honestly evaluate yourself against each rule\n"
        "2. **Acknowledge**: Inform the user that you have reviewed the rules\n"
        "3. **Consent**: Provide consent with the validation code that will be shown\n\n"
        "⚠️ **IMPORTANT**: A unique validation code will be generated each time"
    )
    return HEADER + rules_text + footer


def extract_code(message: str) -> Optional[int]:
    """Pull the validation code back out of a challenge message.

    >>> extract_code(render_challenge("- [ ] Be honest", 7))
    7
    >>> extract_code("no code here") is None
    True
    """
    match = CODE_TOKEN_RE.search(message)
    return int(match.group(1)) if match else None
