"""
Vow - an accountability gate for AI agents.

Gates commits and turn stops behind a challenge/consent handshake:
the agent is shown a checklist plus a one-time code, and must echo the
code back (``vow consent <code>``) before the action goes through.
"""

__version__ = "0.2.0"

__all__ = [
    "__version__",
]
