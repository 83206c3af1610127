"""Top-level package for gpt-term."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .app import GptTermApp
    from .client import AssistantClient
    from .commands import extract_commands
    from .config import load_config
    from .engine import InteractionEngine
    from .exceptions import GptTermError
    from .models import Conversation, Message, Role
    from .persistence import ConversationPersistence
    from .viewport import ScrollManager

__all__ = [
    "AssistantClient",
    "Conversation",
    "ConversationPersistence",
    "GptTermApp",
    "GptTermError",
    "InteractionEngine",
    "Message",
    "Role",
    "ScrollManager",
    "extract_commands",
    "load_config",
]

_LAZY_IMPORTS: dict[str, str] = {
    "AssistantClient": ".client",
    "Conversation": ".models",
    "ConversationPersistence": ".persistence",
    "GptTermApp": ".app",
    "GptTermError": ".exceptions",
    "InteractionEngine": ".engine",
    "Message": ".models",
    "Role": ".models",
    "ScrollManager": ".viewport",
    "extract_commands": ".commands",
    "load_config": ".config",
}


def __getattr__(name: str) -> Any:
    """Lazily import symbols to keep UI and network dependencies out of plain imports."""
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
