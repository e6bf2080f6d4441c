"""Hook invocation context and response encoding.

Claude Code runs ``vow check`` from PreToolUse and Stop/SubagentStop
hooks and reads the result back from the exit code, stderr and stdout:

  Exit 0 + stdout JSON: allowed, ``permissionDecision`` tells the host
  Exit 2 + stderr:      blocked, stderr is fed back to the agent
  Exit 2 + stdout JSON: denied (consent mismatch), ``continue`` is false

A direct CLI call uses plain exit codes (0 allow, 1 block) and stderr.

>>> inv = HookInvocation.from_cli(hook=True, hook_type="PreToolUse")
>>> encode(Decision.ALLOW, inv).stdout
'{"continue":true,"hookSpecificOutput":{"hookEventName":"PreToolUse","permissionDecision":"allow"}}'
>>> encode(Decision.PENDING, HookInvocation.from_cli()).exit_code
1
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vow.protocol import Decision

logger = logging.getLogger(__name__)

EXIT_ALLOW = 0
EXIT_BLOCK = 1
EXIT_HOOK_BLOCK = 2

SHELL_TOOL = "Bash"
GATED_COMMAND_PREFIX = "git commit"


class Mode(str, Enum):
    DIRECT = "direct"
    HOOK = "hook"


class HookType(str, Enum):
    NONE = "None"
    PRE_TOOL_USE = "PreToolUse"
    PRE_TOOL_USE_GIT = "PreToolUseGit"
    STOP = "Stop"
    SUBAGENT_STOP = "SubagentStop"

    @classmethod
    def parse(cls, value: Optional[str]) -> "HookType":
        """Map a ``--hook-type`` value to a member (case-insensitive).

        >>> HookType.parse("stop")
        <HookType.STOP: 'Stop'>
        >>> HookType.parse(None)
        <HookType.NONE: 'None'>
        """
        if not value:
            return cls.NONE
        for member in cls:
            if member.value.lower() == value.strip().lower():
                return member
        raise ValueError(f"Unknown hook type: {value!r}")

    @property
    def is_stop_class(self) -> bool:
        return self in (HookType.STOP, HookType.SUBAGENT_STOP)

    @property
    def event_name(self) -> Optional[str]:
        """Host event name reported in ``hookSpecificOutput``."""
        if self in (HookType.PRE_TOOL_USE, HookType.PRE_TOOL_USE_GIT):
            return "PreToolUse"
        if self.is_stop_class:
            return self.value
        return None


HOOK_TYPE_CHOICES = [t.value for t in HookType if t is not HookType.NONE]


class HookPayload(BaseModel):
    """The JSON a host hook sends on stdin. Unknown fields are kept.

    Known fields of the wrong shape fall back to their defaults so that one
    sloppy field doesn't discard the rest of the payload.

    >>> HookPayload.model_validate({"tool_input": None, "stop_hook_active": True}).stop_hook_active
    True
    """

    model_config = ConfigDict(extra="allow")

    tool_name: str = ""
    tool_input: dict[str, Any] = Field(default_factory=dict)
    stop_hook_active: bool = False

    @field_validator("tool_name", mode="before")
    @classmethod
    def _coerce_tool_name(cls, v: Any) -> Any:
        return v if isinstance(v, str) else ""

    @field_validator("tool_input", mode="before")
    @classmethod
    def _coerce_tool_input(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}

    @field_validator("stop_hook_active", mode="before")
    @classmethod
    def _coerce_stop_hook_active(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def command(self) -> str:
        cmd = self.tool_input.get("command", "")
        return cmd if isinstance(cmd, str) else ""


def parse_payload(raw: Optional[str]) -> Optional[HookPayload]:
    """Parse hook stdin. Returns None for empty or malformed input.

    >>> parse_payload('{"tool_name": "Bash", "tool_input": {"command": "ls"}}').command
    'ls'
    >>> parse_payload("not json") is None
    True
    >>> parse_payload("") is None
    True
    """
    if raw is None or not raw.strip():
        return None
    try:
        return HookPayload.model_validate_json(raw)
    except ValidationError as e:
        logger.debug("Malformed hook payload: %s", e.errors()[:1])
        return None


@dataclass(frozen=True)
class HookInvocation:
    """How vow was called: directly, or by which host hook."""

    mode: Mode = Mode.DIRECT
    hook_type: HookType = HookType.NONE
    payload: Optional[HookPayload] = None
    raw_payload: Optional[str] = None

    @classmethod
    def from_cli(
        cls,
        hook: bool = False,
        hook_type: Optional[str] = None,
        stdin_text: Optional[str] = None,
    ) -> "HookInvocation":
        """Build from CLI flags. A hook type implies hook mode."""
        htype = HookType.parse(hook_type)
        mode = Mode.HOOK if hook or htype is not HookType.NONE else Mode.DIRECT
        payload = parse_payload(stdin_text) if mode is Mode.HOOK else None
        return cls(mode=mode, hook_type=htype, payload=payload, raw_payload=stdin_text)

    @property
    def is_hook(self) -> bool:
        return self.mode is Mode.HOOK


# --- Short-circuits ---


def is_gated_command(payload: Optional[HookPayload]) -> bool:
    """True only for a shell tool call that starts with ``git commit``.

    >>> is_gated_command(HookPayload(tool_name="Bash", tool_input={"command": 'git commit -m "x"'}))
    True
    >>> is_gated_command(HookPayload(tool_name="Bash", tool_input={"command": "ls -la"}))
    False
    >>> is_gated_command(None)
    False
    """
    if payload is None:
        return False
    if payload.tool_name != SHELL_TOOL:
        return False
    return payload.command.lstrip().startswith(GATED_COMMAND_PREFIX)


def stop_hook_active(invocation: HookInvocation) -> bool:
    """True when a Stop-class hook is reacting to its own continuation."""
    return (
        invocation.hook_type.is_stop_class
        and invocation.payload is not None
        and invocation.payload.stop_hook_active
    )


# --- Response encoding ---


@dataclass(frozen=True)
class HookResponse:
    exit_code: int
    stdout: Optional[str] = None
    stderr: Optional[str] = None


def _json_line(data: dict) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def _mismatch_text(reason: str) -> str:
    if reason.startswith("Invalid consent code"):
        return (
            f"\n❌ {reason}\n"
            "Please review the rules again and provide the correct validation code.\n\n"
        )
    return f"\n❌ {reason or 'Error validating consent'}.\n"


def _encode_direct(decision: Decision, message: str, reason: str) -> HookResponse:
    if decision == Decision.ALLOW:
        return HookResponse(EXIT_ALLOW)
    if decision == Decision.PENDING:
        return HookResponse(EXIT_BLOCK, stderr=message)
    return HookResponse(EXIT_BLOCK, stderr=_mismatch_text(reason))


def _hook_json(
    decision: Decision,
    reason: str,
    event_name: Optional[str],
) -> str:
    allowed = decision == Decision.ALLOW
    response: dict[str, Any] = {"continue": allowed}
    if not allowed:
        response["stopReason"] = reason or "Error validating consent"
    if event_name:
        response["hookSpecificOutput"] = {
            "hookEventName": event_name,
            "permissionDecision": "allow" if allowed else "deny",
        }
    return _json_line(response)


def _encoder_for(event_name: Optional[str]) -> Callable[[Decision, str, str], HookResponse]:
    def _encode(decision: Decision, message: str, reason: str) -> HookResponse:
        if decision == Decision.PENDING:
            # Exit 2 + stderr blocks the call and shows the agent the message
            return HookResponse(EXIT_HOOK_BLOCK, stderr=message)
        stdout = _hook_json(decision, reason, event_name)
        if decision == Decision.ALLOW:
            return HookResponse(EXIT_ALLOW, stdout=stdout)
        return HookResponse(EXIT_HOOK_BLOCK, stdout=stdout)

    return _encode


_HOOK_ENCODERS = {
    HookType.NONE: _encoder_for(None),
    HookType.PRE_TOOL_USE: _encoder_for(HookType.PRE_TOOL_USE.event_name),
    HookType.PRE_TOOL_USE_GIT: _encoder_for(HookType.PRE_TOOL_USE_GIT.event_name),
    HookType.STOP: _encoder_for(HookType.STOP.event_name),
    HookType.SUBAGENT_STOP: _encoder_for(HookType.SUBAGENT_STOP.event_name),
}


def encode(
    decision: Decision,
    invocation: HookInvocation,
    *,
    message: str = "",
    reason: str = "",
) -> HookResponse:
    """Map a decision to the exit code and output the caller expects.

    ``message`` is the challenge text shown on PENDING; ``reason`` is the
    mismatch explanation used on DENY.
    """
    if not invocation.is_hook:
        return _encode_direct(decision, message, reason)
    return _HOOK_ENCODERS[invocation.hook_type](decision, message, reason)


def encode_passthrough(invocation: HookInvocation) -> HookResponse:
    """Let the call through without expressing a permission decision.

    Used for tool calls outside the gate (a non-commit command under
    PreToolUseGit), so the host's own permission checks still apply.
    """
    if not invocation.is_hook:
        return HookResponse(EXIT_ALLOW)
    return HookResponse(EXIT_ALLOW, stdout=_json_line({"continue": True}))
