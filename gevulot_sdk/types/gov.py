"""
Governance: proposals, votes, deposits and tallies, and the intents that
submit, vote on and fund proposals (``cosmos.gov.v1beta1``).

Tally counts are integers; vote weights and tally thresholds stay decimal
strings exactly as the ledger sends them.

Proposal content is one of:

* ``TextProposal``: a title and description, nothing executes.
* ``SoftwareUpgrade``: schedules a chain upgrade plan; ``authority`` is the
  governance module account.
* ``RawContent``: any other content, kept as its type URL and bytes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import ClassVar, List, Optional, Tuple, Union

from ..errors import InvalidIntent
from .entities import Coin, LedgerEnum
from .intents import Intent

__all__ = [
    "VoteOption",
    "ProposalStatus",
    "WeightedVoteOption",
    "TallyResult",
    "TextProposal",
    "Plan",
    "SoftwareUpgrade",
    "RawContent",
    "ProposalContent",
    "Proposal",
    "ProposalVote",
    "ProposalDeposit",
    "GovParams",
    "PARAMS_TYPES",
    "SubmitProposal",
    "Vote",
    "VoteWeighted",
    "Deposit",
    "GOV_INTENTS",
]

PARAMS_TYPES = ("voting", "deposit", "tallying")


class VoteOption(LedgerEnum):
    UNSPECIFIED = 0
    YES = 1
    ABSTAIN = 2
    NO = 3
    NO_WITH_VETO = 4

    @classmethod
    def parse(cls, value: Union["VoteOption", int, str]) -> "VoteOption":
        """Accept a member, its number, or a name such as ``"yes"`` or ``"no-with-veto"``."""
        if isinstance(value, str):
            key = value.strip().upper().replace("-", "_").replace(" ", "_")
            if key.startswith("VOTE_OPTION_"):
                key = key[len("VOTE_OPTION_"):]
            try:
                return cls[key]
            except KeyError:
                raise ValueError(f"unknown vote option {value!r}") from None
        return cls(value)


class ProposalStatus(LedgerEnum):
    UNSPECIFIED = 0
    DEPOSIT_PERIOD = 1
    VOTING_PERIOD = 2
    PASSED = 3
    REJECTED = 4
    FAILED = 5

    @property
    def is_final(self) -> bool:
        return self in (ProposalStatus.PASSED, ProposalStatus.REJECTED, ProposalStatus.FAILED)


@dataclass(frozen=True)
class WeightedVoteOption:
    option: VoteOption
    weight: str = "1"


@dataclass
class TallyResult:
    yes: int = 0
    abstain: int = 0
    no: int = 0
    no_with_veto: int = 0

    @property
    def total(self) -> int:
        return self.yes + self.abstain + self.no + self.no_with_veto


# -----------------------------------------------------------------------------
# Proposal content
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class TextProposal:
    title: str
    description: str = ""


@dataclass(frozen=True)
class Plan:
    """Upgrade plan. ``height`` is the block at which the chain halts for the upgrade."""

    name: str
    height: int = 0
    info: str = ""


@dataclass(frozen=True)
class SoftwareUpgrade:
    plan: Plan
    authority: str = ""


@dataclass(frozen=True)
class RawContent:
    type_url: str
    value: bytes = b""


ProposalContent = Union[TextProposal, SoftwareUpgrade, RawContent]


# -----------------------------------------------------------------------------
# Ledger state
# -----------------------------------------------------------------------------


@dataclass
class Proposal:
    proposal_id: int
    content: Optional[ProposalContent] = None
    status: ProposalStatus = ProposalStatus.UNSPECIFIED
    final_tally_result: TallyResult = field(default_factory=TallyResult)
    submit_time: Optional[datetime] = None
    deposit_end_time: Optional[datetime] = None
    total_deposit: List[Coin] = field(default_factory=list)
    voting_start_time: Optional[datetime] = None
    voting_end_time: Optional[datetime] = None

    @property
    def title(self) -> str:
        return self.content.title if isinstance(self.content, TextProposal) else ""


@dataclass
class ProposalVote:
    proposal_id: int
    voter: str
    options: List[WeightedVoteOption] = field(default_factory=list)

    @property
    def option(self) -> Optional[VoteOption]:
        """The single option of a plain vote (None for a split vote)."""
        if len(self.options) == 1:
            return self.options[0].option
        return None


@dataclass
class ProposalDeposit:
    proposal_id: int
    depositor: str
    amount: List[Coin] = field(default_factory=list)


@dataclass
class GovParams:
    """
    Module parameters. A ``params_type`` query fills only its own group; the
    other fields keep their defaults.
    """

    voting_period: Optional[timedelta] = None
    min_deposit: List[Coin] = field(default_factory=list)
    max_deposit_period: Optional[timedelta] = None
    quorum: str = ""
    threshold: str = ""
    veto_threshold: str = ""


# -----------------------------------------------------------------------------
# Intents
# -----------------------------------------------------------------------------


class _GovIntent(Intent):
    def _require_proposal_id(self) -> None:
        pid = getattr(self, "proposal_id")
        if isinstance(pid, bool) or not isinstance(pid, int) or pid <= 0:
            raise InvalidIntent(f"proposal_id must be a positive integer, got {pid!r}", intent=self._name, field="proposal_id")

    def _require_coins(self, name: str, coins: Tuple[Coin, ...], *, allow_empty: bool = True) -> None:
        if not coins and not allow_empty:
            raise InvalidIntent(f"{name} needs at least one coin", intent=self._name, field=name)
        for coin in coins:
            if not isinstance(coin, Coin):
                raise InvalidIntent(f"{name} entries must be Coin values", intent=self._name, field=name)
            self._require_str(f"{name}.denom", coin.denom)
            if isinstance(coin.amount, bool) or not isinstance(coin.amount, int) or coin.amount <= 0:
                raise InvalidIntent(f"{name} amounts must be positive integers", intent=self._name, field=name)

    def _require_option(self, name: str, option: object) -> None:
        if not isinstance(option, VoteOption) or not option.is_known or option is VoteOption.UNSPECIFIED:
            raise InvalidIntent(f"{name} must be a known vote option, got {option!r}", intent=self._name, field=name)


@dataclass(frozen=True)
class SubmitProposal(_GovIntent):
    type_name: ClassVar[str] = "cosmos.gov.v1beta1.MsgSubmitProposal"
    response_type: ClassVar[str] = "cosmos.gov.v1beta1.MsgSubmitProposalResponse"
    signer_field: ClassVar[str] = "proposer"

    content: Optional[ProposalContent] = None
    initial_deposit: Tuple[Coin, ...] = ()
    proposer: str = ""

    def validate(self) -> None:
        super().validate()
        content = self.content
        if isinstance(content, TextProposal):
            self._require_str("content.title", content.title)
        elif isinstance(content, SoftwareUpgrade):
            self._require_str("content.authority", content.authority)
            self._require_str("content.plan.name", content.plan.name)
            height = content.plan.height
            if isinstance(height, bool) or not isinstance(height, int) or height <= 0:
                raise InvalidIntent("content.plan.height must be a positive block height", intent=self._name, field="content.plan.height")
        elif isinstance(content, RawContent):
            if not isinstance(content.type_url, str) or not content.type_url.startswith("/"):
                raise InvalidIntent("content.type_url must start with '/'", intent=self._name, field="content.type_url")
        else:
            raise InvalidIntent(f"unsupported proposal content {content!r}", intent=self._name, field="content")
        self._require_coins("initial_deposit", self.initial_deposit)


@dataclass(frozen=True)
class Vote(_GovIntent):
    type_name: ClassVar[str] = "cosmos.gov.v1beta1.MsgVote"
    response_type: ClassVar[str] = "cosmos.gov.v1beta1.MsgVoteResponse"
    signer_field: ClassVar[str] = "voter"

    proposal_id: int = 0
    option: VoteOption = VoteOption.UNSPECIFIED
    voter: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_proposal_id()
        self._require_option("option", self.option)


@dataclass(frozen=True)
class VoteWeighted(_GovIntent):
    """Split vote; weights are decimal strings in (0, 1] that sum to exactly 1."""

    type_name: ClassVar[str] = "cosmos.gov.v1beta1.MsgVoteWeighted"
    response_type: ClassVar[str] = "cosmos.gov.v1beta1.MsgVoteWeightedResponse"
    signer_field: ClassVar[str] = "voter"

    proposal_id: int = 0
    options: Tuple[WeightedVoteOption, ...] = ()
    voter: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_proposal_id()
        if not self.options:
            raise InvalidIntent("options needs at least one entry", intent=self._name, field="options")
        total = Decimal(0)
        seen = set()
        for wo in self.options:
            if not isinstance(wo, WeightedVoteOption):
                raise InvalidIntent("options entries must be WeightedVoteOption values", intent=self._name, field="options")
            self._require_option("options.option", wo.option)
            if wo.option in seen:
                raise InvalidIntent(f"duplicate option {wo.option.name}", intent=self._name, field="options")
            seen.add(wo.option)
            try:
                weight = Decimal(wo.weight)
            except (InvalidOperation, TypeError, ValueError):
                raise InvalidIntent(f"weight {wo.weight!r} is not a decimal", intent=self._name, field="options.weight") from None
            if not weight.is_finite() or not Decimal(0) < weight <= Decimal(1):
                raise InvalidIntent(f"weight {wo.weight} is outside (0, 1]", intent=self._name, field="options.weight")
            total += weight
        if total != Decimal(1):
            raise InvalidIntent(f"weights sum to {total}, not 1", intent=self._name, field="options.weight")


@dataclass(frozen=True)
class Deposit(_GovIntent):
    type_name: ClassVar[str] = "cosmos.gov.v1beta1.MsgDeposit"
    response_type: ClassVar[str] = "cosmos.gov.v1beta1.MsgDepositResponse"
    signer_field: ClassVar[str] = "depositor"

    proposal_id: int = 0
    amount: Tuple[Coin, ...] = ()
    depositor: str = ""

    def validate(self) -> None:
        super().validate()
        self._require_proposal_id()
        self._require_coins("amount", self.amount, allow_empty=False)


GOV_INTENTS = (SubmitProposal, Vote, VoteWeighted, Deposit)
