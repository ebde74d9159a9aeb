"""
Governance messages <-> domain values.

Proposal content travels as ``google.protobuf.Any``. Text proposals and
software upgrades are decoded; any other content type is kept as
``RawContent`` so a proposal list never fails on a type this client does not
know. Timestamps and durations become timezone-aware ``datetime`` and
``timedelta`` values.

Decimal fields (vote weights, tally thresholds) are plain decimal strings
here and 18-place scaled integers on the wire.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

from google.protobuf.message import Message

from ..errors import CodecError, MalformedMessage
from ..proto import message_class, pack_any, unpack_any
from ..types.gov import (Deposit, GovParams, Plan, Proposal, ProposalContent,
                         ProposalDeposit, ProposalStatus, ProposalVote,
                         RawContent, SoftwareUpgrade, SubmitProposal,
                         TallyResult, TextProposal, Vote, VoteOption,
                         VoteWeighted, WeightedVoteOption)
from .entities import coin_from_proto

__all__ = [
    "content_to_any",
    "content_from_any",
    "gov_intent_to_proto",
    "proposal_from_proto",
    "vote_from_proto",
    "deposit_from_proto",
    "tally_from_proto",
    "params_from_proto",
]

_GOV = "cosmos.gov.v1beta1."
_TEXT = _GOV + "TextProposal"
_UPGRADE = "cosmos.upgrade.v1beta1.MsgSoftwareUpgrade"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Cosmos decimals travel as integers scaled by 10**18.
DEC_PRECISION = 18


def _time(msg: Message, name: str) -> Optional[datetime]:
    if not msg.HasField(name):
        return None
    ts = getattr(msg, name)
    return _EPOCH + timedelta(seconds=ts.seconds, microseconds=ts.nanos // 1000)


def _duration(msg: Message, name: str) -> Optional[timedelta]:
    if not msg.HasField(name):
        return None
    d = getattr(msg, name)
    return timedelta(seconds=d.seconds, microseconds=d.nanos // 1000)


def _int(value: str, type_name: str) -> int:
    try:
        return int(value or "0")
    except ValueError as e:
        raise MalformedMessage(f"{value!r} is not an integer", type_name=type_name) from e


def _dec_to_wire(value: str) -> str:
    return str(int(Decimal(value).scaleb(DEC_PRECISION)))


def _dec_from_wire(raw: str, type_name: str) -> str:
    if not raw or "." in raw:
        return raw
    try:
        return f"{Decimal(int(raw)).scaleb(-DEC_PRECISION):.{DEC_PRECISION}f}"
    except ValueError as e:
        raise MalformedMessage(f"{raw!r} is not a decimal", type_name=type_name) from e


def _add_coins(container, coins) -> None:
    for c in coins:
        container.add(denom=c.denom, amount=str(c.amount))


# -----------------------------------------------------------------------------
# Content
# -----------------------------------------------------------------------------


def content_to_any(content: ProposalContent) -> Message:
    if isinstance(content, TextProposal):
        return pack_any(message_class(_TEXT)(title=content.title, description=content.description))
    if isinstance(content, SoftwareUpgrade):
        msg = message_class(_UPGRADE)(authority=content.authority)
        msg.plan.name = content.plan.name
        msg.plan.height = content.plan.height
        msg.plan.info = content.plan.info
        return pack_any(msg)
    if isinstance(content, RawContent):
        return message_class("google.protobuf.Any")(type_url=content.type_url, value=content.value)
    raise CodecError(f"unsupported proposal content {type(content).__name__}", type_name=_GOV + "MsgSubmitProposal")


def content_from_any(any_msg: Message) -> ProposalContent:
    if any_msg.type_url == "/" + _TEXT:
        msg = unpack_any(any_msg, message_class(_TEXT))
        return TextProposal(title=msg.title, description=msg.description)
    if any_msg.type_url == "/" + _UPGRADE:
        msg = unpack_any(any_msg, message_class(_UPGRADE))
        plan = Plan(name=msg.plan.name, height=msg.plan.height, info=msg.plan.info)
        return SoftwareUpgrade(plan=plan, authority=msg.authority)
    return RawContent(type_url=any_msg.type_url, value=bytes(any_msg.value))


# -----------------------------------------------------------------------------
# Intents
# -----------------------------------------------------------------------------


def gov_intent_to_proto(intent) -> Message:
    msg = message_class(intent.type_name)()
    if isinstance(intent, SubmitProposal):
        msg.content.CopyFrom(content_to_any(intent.content))
        _add_coins(msg.initial_deposit, intent.initial_deposit)
        msg.proposer = intent.proposer
    elif isinstance(intent, Vote):
        msg.proposal_id, msg.voter, msg.option = intent.proposal_id, intent.voter, int(intent.option)
    elif isinstance(intent, VoteWeighted):
        msg.proposal_id, msg.voter = intent.proposal_id, intent.voter
        for wo in intent.options:
            msg.options.add(option=int(wo.option), weight=_dec_to_wire(wo.weight))
    elif isinstance(intent, Deposit):
        msg.proposal_id, msg.depositor = intent.proposal_id, intent.depositor
        _add_coins(msg.amount, intent.amount)
    else:
        raise CodecError(f"not a governance intent: {type(intent).__name__}", type_name=intent.type_name)
    return msg


# -----------------------------------------------------------------------------
# Query results
# -----------------------------------------------------------------------------


def tally_from_proto(msg: Message) -> TallyResult:
    name = msg.DESCRIPTOR.full_name
    return TallyResult(
        yes=_int(msg.yes, name),
        abstain=_int(msg.abstain, name),
        no=_int(msg.no, name),
        no_with_veto=_int(msg.no_with_veto, name),
    )


def proposal_from_proto(msg: Message) -> Proposal:
    return Proposal(
        proposal_id=msg.proposal_id,
        content=content_from_any(msg.content) if msg.HasField("content") else None,
        status=ProposalStatus(msg.status),
        final_tally_result=tally_from_proto(msg.final_tally_result),
        submit_time=_time(msg, "submit_time"),
        deposit_end_time=_time(msg, "deposit_end_time"),
        total_deposit=[coin_from_proto(c) for c in msg.total_deposit],
        voting_start_time=_time(msg, "voting_start_time"),
        voting_end_time=_time(msg, "voting_end_time"),
    )


def vote_from_proto(msg: Message) -> ProposalVote:
    name = msg.DESCRIPTOR.full_name
    options = [
        WeightedVoteOption(option=VoteOption(o.option), weight=_dec_from_wire(o.weight, name)) for o in msg.options
    ]
    if not options and msg.option:
        # nodes before weighted voting only fill the single option
        options = [WeightedVoteOption(option=VoteOption(msg.option))]
    return ProposalVote(proposal_id=msg.proposal_id, voter=msg.voter, options=options)


def deposit_from_proto(msg: Message) -> ProposalDeposit:
    return ProposalDeposit(
        proposal_id=msg.proposal_id,
        depositor=msg.depositor,
        amount=[coin_from_proto(c) for c in msg.amount],
    )


def _tally_param(raw: bytes, type_name: str) -> str:
    try:
        text = bytes(raw).decode("ascii")
    except UnicodeDecodeError as e:
        raise MalformedMessage("tally parameter is not an ASCII decimal", type_name=type_name) from e
    return _dec_from_wire(text, type_name)


def params_from_proto(msg: Message) -> GovParams:
    params = GovParams()
    if msg.HasField("voting_params"):
        params.voting_period = _duration(msg.voting_params, "voting_period")
    if msg.HasField("deposit_params"):
        dp = msg.deposit_params
        params.min_deposit = [coin_from_proto(c) for c in dp.min_deposit]
        params.max_deposit_period = _duration(dp, "max_deposit_period")
    if msg.HasField("tally_params"):
        tp, name = msg.tally_params, msg.tally_params.DESCRIPTOR.full_name
        params.quorum = _tally_param(tp.quorum, name)
        params.threshold = _tally_param(tp.threshold, name)
        params.veto_threshold = _tally_param(tp.veto_threshold, name)
    return params

