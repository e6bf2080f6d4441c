"""Challenge/consent protocol.

The gate is a small state machine over two records, the challenge
(issued by us) and the consent (written by the agent):

    NoChallenge --attempt--> Challenged --consent == code--> Verified
                                  ^                             (ALLOW, clears both)
                                  |
                                  +---- consent != code ---- Denied
                                                (DENY, clears consent only)

``transition()`` is the pure core; ``verify()`` and ``issue()`` apply it
to a record store through a ``GateContext``, which also carries the clock
and code source so tests can pin both.

>>> transition(None, None).decision
<Decision.PENDING: 'pending'>
>>> transition("42", " 42\\n").state
<GateState.VERIFIED: 'verified'>
>>> t = transition("42", "41")
>>> t.decision, t.clear_consent, t.clear_challenge
(<Decision.DENY: 'deny'>, True, False)
"""

import logging
import secrets
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from vow.config import (
    CHALLENGE_FILE,
    CONSENT_FILE,
    COOLDOWN_FILE,
    DEFAULT_COOLDOWN_MS,
    VowConfig,
)
from vow.store import FileRecordStore, RecordStore, RecordStoreError

logger = logging.getLogger(__name__)

CODE_RANGE = 1000


class Decision(str, Enum):
    PENDING = "pending"
    ALLOW = "allow"
    DENY = "deny"


class GateState(str, Enum):
    NO_CHALLENGE = "no_challenge"
    CHALLENGED = "challenged"
    VERIFIED = "verified"
    DENIED = "denied"


@dataclass(frozen=True)
class Transition:
    """Outcome of comparing the current records, before any I/O."""

    state: GateState
    decision: Decision
    clear_challenge: bool = False
    clear_consent: bool = False


@dataclass(frozen=True)
class Verdict:
    """Result of ``verify()``. ``expected``/``actual`` are set on mismatch."""

    decision: Decision
    state: GateState
    expected: Optional[str] = None
    actual: Optional[str] = None
    reason: Optional[str] = None


def transition(challenge: Optional[str], consent: Optional[str]) -> Transition:
    """Decide what the records mean. Codes are compared after trimming."""
    if consent is None:
        state = GateState.NO_CHALLENGE if challenge is None else GateState.CHALLENGED
        return Transition(state, Decision.PENDING)

    if challenge is None:
        # Consent without a challenge is accepted (pre-consent)
        return Transition(GateState.VERIFIED, Decision.ALLOW, clear_consent=True)

    if consent.strip() == challenge.strip():
        return Transition(
            GateState.VERIFIED, Decision.ALLOW, clear_challenge=True, clear_consent=True
        )

    return Transition(GateState.DENIED, Decision.DENY, clear_consent=True)


def system_clock_ms() -> int:
    return int(time.time() * 1000)


def random_code() -> int:
    return secrets.randbelow(CODE_RANGE)


@dataclass
class GateContext:
    """Everything an operation needs: where the records live, time, randomness."""

    root: Path
    store: RecordStore
    clock: Callable[[], int] = system_clock_ms
    code_source: Callable[[], int] = random_code
    cooldown_ms: int = DEFAULT_COOLDOWN_MS

    @classmethod
    def from_config(cls, config: VowConfig) -> "GateContext":
        return cls(
            root=config.root,
            store=FileRecordStore(config.root),
            cooldown_ms=config.cooldown_ms,
        )


def _clear(ctx: GateContext, name: str) -> None:
    try:
        ctx.store.delete(name)
    except RecordStoreError as e:
        logger.warning("Could not clear %s: %s", name, e)


def verify(ctx: GateContext) -> Verdict:
    """Check the consent record against the outstanding challenge.

    PENDING leaves the records alone. ALLOW clears consent (and the
    challenge, if any). DENY clears consent but keeps the challenge so a
    retry with the right code can still pass.
    """
    try:
        challenge = ctx.store.read(CHALLENGE_FILE)
        consent = ctx.store.read(CONSENT_FILE)
    except RecordStoreError as e:
        logger.warning("Error validating consent: %s", e)
        return Verdict(Decision.DENY, GateState.DENIED, reason="Error validating consent")

    t = transition(challenge, consent)
    if t.clear_consent:
        _clear(ctx, CONSENT_FILE)
    if t.clear_challenge:
        _clear(ctx, CHALLENGE_FILE)

    if t.decision == Decision.DENY:
        expected = challenge.strip() if challenge is not None else None
        actual = consent.strip() if consent is not None else None
        logger.info("Consent mismatch: expected %r, got %r", expected, actual)
        return Verdict(
            t.decision,
            t.state,
            expected=expected,
            actual=actual,
            reason=f"Invalid consent code. Expected '{expected}' but got '{actual}'",
        )

    logger.debug("verify: state=%s decision=%s", t.state.value, t.decision.value)
    return Verdict(t.decision, t.state)


def issue(ctx: GateContext) -> Optional[int]:
    """Draw a fresh code and persist it as the challenge.

    Returns None when the challenge can't be written; callers fail open.
    """
    code = ctx.code_source()
    if not 0 <= code < CODE_RANGE:
        raise ValueError(f"code source returned {code}, expected 0 <= code < {CODE_RANGE}")
    try:
        ctx.store.write(CHALLENGE_FILE, str(code))
    except RecordStoreError as e:
        logger.warning("Could not persist challenge, allowing: %s", e)
        return None
    logger.debug("Issued challenge %d", code)
    return code


def supply_consent(ctx: GateContext, code: str) -> None:
    """Write ``code`` verbatim as the consent record."""
    ctx.store.write(CONSENT_FILE, code)


# --- Cooldown (stop-hook loop guard) ---


def read_cooldown(ctx: GateContext) -> Optional[int]:
    """Return the cooldown timestamp in epoch ms, or None if absent/corrupt."""
    try:
        raw = ctx.store.read(COOLDOWN_FILE)
    except RecordStoreError as e:
        logger.debug("Unreadable cooldown marker: %s", e)
        return None
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.debug("Corrupt cooldown marker: %r", raw[:50])
        return None


def mark_cooldown(ctx: GateContext) -> None:
    try:
        ctx.store.write(COOLDOWN_FILE, str(ctx.clock()))
    except RecordStoreError as e:
        logger.warning("Could not write cooldown marker: %s", e)


def cooldown_active(ctx: GateContext) -> bool:
    """True if a marker exists and is younger than the cooldown window.

    A marker from the future (clock skew) counts as expired.
    """
    stamp = read_cooldown(ctx)
    if stamp is None:
        return False
    age = ctx.clock() - stamp
    return 0 <= age < ctx.cooldown_ms


def clear_cooldown(ctx: GateContext) -> None:
    _clear(ctx, COOLDOWN_FILE)


def reset(ctx: GateContext) -> None:
    """Remove every record."""
    for name in (CHALLENGE_FILE, CONSENT_FILE, COOLDOWN_FILE):
        ctx.store.delete(name)
