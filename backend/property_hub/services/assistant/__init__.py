"""Assistant hub module.

Local keyword-based assistant roles sharing listing context.
"""

from .service import AssistantHub

__all__ = ["AssistantHub"]
