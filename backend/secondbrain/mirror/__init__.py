# SecondBrain Vault Mirror
from .vault import VaultMirror, VaultError, render_thought, render_source

__all__ = [
    "VaultMirror",
    "VaultError",
    "render_thought",
    "render_source",
]
