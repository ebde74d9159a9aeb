"""
Intent -> ledger message, and committed message response -> client value.

Every intent dataclass names its wire type in ``type_name``; fields map onto
the message by name. A few shapes need help:

* ``CreateTask`` / ``CreateProof`` carry a spec that the message flattens
  into top-level fields.
* ``CreateProof.labels`` is a string map.
* ``Transfer`` becomes a bank ``MsgSend`` with a single coin.

Governance intents are encoded by ``codec.gov``.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Mapping, Optional, Union

from google.protobuf.message import Message

from ..errors import CodecError, MalformedMessage
from ..proto import message_class, pack_any, unpack_any
from ..types.entities import Params, ProofSpec, TaskSpec, WorkflowSpec
from ..types.gov import GOV_INTENTS, SubmitProposal
from ..types.intents import (CreatePin, CreateProof, CreateTask,
                             CreateWorker, CreateWorkflow, Intent,
                             RescheduleResult, RescheduleTask, Transfer)
from ..types.units import ByteSize
from .entities import fill_proto
from .gov import gov_intent_to_proto

__all__ = ["intent_to_proto", "intent_to_any", "decode_response", "CREATES_ID"]

# Intents whose committed response carries the id of the new entity.
CREATES_ID = (CreateWorker, CreateTask, CreateWorkflow, CreateProof, CreatePin)

# Spec fields the create-task message does not carry.
_TASK_SPEC_SKIP = ("workflow_ref",)


def _assign(msg: Message, name: str, value: Any) -> None:
    if isinstance(value, ByteSize):
        value = value.to_bytes()
    if isinstance(value, (WorkflowSpec, Params)):
        fill_proto(getattr(msg, name), value)
    elif isinstance(value, Mapping):
        getattr(msg, name).update({str(k): str(v) for k, v in value.items()})
    elif isinstance(value, (list, tuple)):
        container = getattr(msg, name)
        for item in value:
            if dataclasses.is_dataclass(item):
                fill_proto(container.add(), item)
            else:
                container.append(item.to_bytes() if isinstance(item, ByteSize) else item)
    else:
        setattr(msg, name, value)


def _flatten(msg: Message, spec: Union[TaskSpec, ProofSpec], skip=()) -> None:
    for f in dataclasses.fields(spec):
        if f.name not in skip:
            _assign(msg, f.name, getattr(spec, f.name))


def intent_to_proto(intent: Intent) -> Message:
    """Build the ledger message for ``intent`` (no validation here)."""
    if isinstance(intent, GOV_INTENTS):
        try:
            return gov_intent_to_proto(intent)
        except (AttributeError, TypeError, ValueError, ArithmeticError) as e:
            raise CodecError(f"cannot encode {type(intent).__name__}: {e}", type_name=intent.type_name) from e
    msg = message_class(intent.type_name)()
    try:
        if isinstance(intent, Transfer):
            msg.from_address = intent.creator
            msg.to_address = intent.to_address
            msg.amount.add(denom=intent.denom, amount=str(intent.amount))
            return msg

        for f in dataclasses.fields(intent):
            value = getattr(intent, f.name)
            if f.name == "spec" and isinstance(value, (TaskSpec, ProofSpec)):
                _flatten(msg, value, _TASK_SPEC_SKIP if isinstance(value, TaskSpec) else ())
            else:
                _assign(msg, f.name, value)
    except (AttributeError, TypeError, ValueError) as e:
        raise CodecError(f"cannot encode {type(intent).__name__}: {e}", type_name=intent.type_name) from e
    return msg


def intent_to_any(intent: Intent) -> Message:
    return pack_any(intent_to_proto(intent))


def decode_response(intent: Intent, response: Message) -> Optional[Union[str, int, RescheduleResult]]:
    """
    Interpret one ``msg_responses`` entry for ``intent``.

    Create intents yield the new entity id, ``SubmitProposal`` the new
    proposal number, ``RescheduleTask`` a ``RescheduleResult``; everything
    else yields ``None``.
    """
    msg = unpack_any(response, message_class(intent.response_type))
    if isinstance(intent, CREATES_ID):
        if not msg.id:
            raise MalformedMessage("create response carries no id", type_name=intent.response_type)
        return msg.id
    if isinstance(intent, SubmitProposal):
        if not msg.proposal_id:
            raise MalformedMessage("proposal response carries no proposal id", type_name=intent.response_type)
        return msg.proposal_id
    if isinstance(intent, RescheduleTask):
        return RescheduleResult(primary=msg.primary, secondary=msg.secondary)
    return None


