"""Gate control flow for ``vow check``.

Order of evaluation:
  1. Loop guard: a Stop hook reacting to its own continuation is allowed
  2. Command filter: PreToolUseGit only gates ``git commit``
  3. No checklist: nothing to enforce
  4. Verify consent against the challenge
  5. Pending: Stop-class cooldown, otherwise issue a fresh challenge
"""

import logging
from typing import Optional

from vow.hooks import (
    HookInvocation,
    HookResponse,
    HookType,
    encode,
    encode_passthrough,
    is_gated_command,
    stop_hook_active,
)
from vow.protocol import (
    Decision,
    GateContext,
    clear_cooldown,
    cooldown_active,
    issue,
    mark_cooldown,
    verify,
)
from vow.rules import render_challenge

logger = logging.getLogger(__name__)


def run_check(
    ctx: GateContext,
    invocation: HookInvocation,
    rules_text: Optional[str],
) -> HookResponse:
    """Evaluate one gated attempt and return what to send back to the caller."""
    htype = invocation.hook_type
    logger.debug("check: mode=%s hook_type=%s", invocation.mode.value, htype.value)

    if stop_hook_active(invocation):
        logger.info("ALLOW: stop_hook_active (own continuation)")
        return encode(Decision.ALLOW, invocation)

    if htype is HookType.PRE_TOOL_USE_GIT and not is_gated_command(invocation.payload):
        logger.debug("PASS: not a git commit")
        return encode_passthrough(invocation)

    if not rules_text or not rules_text.strip():
        logger.debug("ALLOW: no rules to enforce")
        return encode(Decision.ALLOW, invocation)

    verdict = verify(ctx)

    if verdict.decision == Decision.ALLOW:
        if htype.is_stop_class:
            mark_cooldown(ctx)
        logger.info("ALLOW: consent verified")
        return encode(Decision.ALLOW, invocation)

    if verdict.decision == Decision.DENY:
        logger.info("DENY: %s", verdict.reason)
        return encode(Decision.DENY, invocation, reason=verdict.reason or "")

    if htype.is_stop_class:
        if cooldown_active(ctx):
            logger.info("ALLOW: within cooldown window (%d ms)", ctx.cooldown_ms)
            return encode(Decision.ALLOW, invocation)
        clear_cooldown(ctx)

    code = issue(ctx)
    if code is None:
        # Fail open rather than block on an environment fault
        return encode(Decision.ALLOW, invocation)

    logger.info("PENDING: challenge issued")
    return encode(
        Decision.PENDING,
        invocation,
        message=render_challenge(rules_text, code),
    )
