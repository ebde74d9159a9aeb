"""
gevulot_sdk.proto
=================

Runtime access to the wire message classes.

>>> Task = message_class("gevulot.gevulot.Task")
>>> any_msg = pack_any(message_class("gevulot.gevulot.MsgDeleteTask")(creator="gvlt1...", id="t1"))
>>> any_msg.type_url
'/gevulot.gevulot.MsgDeleteTask'
"""

from __future__ import annotations

from functools import lru_cache
from typing import Type, TypeVar

from google.protobuf import message_factory
from google.protobuf.message import DecodeError, Message

from ..errors import MalformedMessage
from .schema import build_pool

__all__ = ["POOL", "message_class", "type_url", "pack_any", "unpack_any"]

M = TypeVar("M", bound=Message)

POOL = build_pool()


@lru_cache(maxsize=None)
def message_class(full_name: str) -> Type[Message]:
    """Message class for a fully-qualified type name, e.g. ``cosmos.tx.v1beta1.TxRaw``."""
    return message_factory.GetMessageClass(POOL.FindMessageTypeByName(full_name))


def type_url(message: Message) -> str:
    return "/" + message.DESCRIPTOR.full_name


def pack_any(message: Message) -> Message:
    """Wrap ``message`` in ``google.protobuf.Any`` using the Cosmos ``/full.name`` URL form."""
    return message_class("google.protobuf.Any")(
        type_url=type_url(message),
        value=message.SerializeToString(deterministic=True),
    )


def unpack_any(any_msg: Message, cls: Type[M]) -> M:
    expected = "/" + cls.DESCRIPTOR.full_name
    if any_msg.type_url != expected:
        raise MalformedMessage(
            f"expected {expected}, got {any_msg.type_url or '<empty>'}",
            type_name=cls.DESCRIPTOR.full_name,
        )
    try:
        return cls.FromString(any_msg.value)
    except DecodeError as e:
        raise MalformedMessage(str(e), type_name=cls.DESCRIPTOR.full_name) from e
