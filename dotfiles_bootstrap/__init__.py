"""Declarative dotfiles bootstrapper.

Core design goals:
- Idempotent stages; re-running converges to the same state
- One package-manager implementation per platform, chosen once
- Non-destructive linking (existing files are moved aside, never deleted)
- Partial success is reported, not fatal
- Centralized logging
"""

__all__ = []
