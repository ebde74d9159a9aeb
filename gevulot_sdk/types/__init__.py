"""
gevulot_sdk.types
=================

Domain entities, ledger state enums, transaction intents, governance types
and unit helpers.
"""

from .entities import *  # noqa: F401,F403
from .entities import __all__ as _entities_all
from .intents import *  # noqa: F401,F403
from .intents import __all__ as _intents_all
from .gov import *  # noqa: F401,F403
from .gov import __all__ as _gov_all
from .units import ByteSize, ByteUnit  # noqa: F401

__all__ = [*_entities_all, *_intents_all, *_gov_all, "ByteSize", "ByteUnit"]
