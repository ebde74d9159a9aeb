"""
gevulot_sdk.query.gov
=====================

Governance queries (``cosmos.gov.v1beta1.Query``).

Single lookups raise ``NotFound`` naming what was missing (``proposal``,
``vote``, ``deposit``); listings are ``EntityStream``s over the same
pagination walk the entity queries use.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Optional, Union

from ..codec.gov import (deposit_from_proto, params_from_proto,
                         proposal_from_proto, tally_from_proto,
                         vote_from_proto)
from ..errors import NotFound
from ..proto import message_class
from ..types.gov import (PARAMS_TYPES, GovParams, Proposal, ProposalDeposit,
                         ProposalStatus, ProposalVote, TallyResult)
from .client import EntityStream, Page, PageOptions, apply_pagination, page_of

log = logging.getLogger(__name__)

GOV_QUERY = "/cosmos.gov.v1beta1.Query/"
_G = "cosmos.gov.v1beta1."


class GovQueryClient:
    """Governance queries over any transport with a ``unary`` coroutine."""

    def __init__(self, transport: Any, *, timeout: Optional[float] = None) -> None:
        self._transport = transport
        self._timeout = timeout

    async def _call(self, name: str, request: Any) -> Any:
        return await self._transport.unary(
            GOV_QUERY + name, request, message_class(f"{_G}Query{name}Response"), timeout=self._timeout
        )

    async def _lookup(self, name: str, what: str, key: str, **fields: Any) -> Any:
        req = message_class(f"{_G}Query{name}Request")(**fields)
        try:
            return await self._call(name, req)
        except NotFound:
            raise NotFound(what=what, key=key) from None

    # ---- proposals ----

    async def proposal(self, proposal_id: int) -> Proposal:
        resp = await self._lookup("Proposal", "proposal", str(proposal_id), proposal_id=proposal_id)
        if not resp.HasField("proposal"):
            raise NotFound(what="proposal", key=str(proposal_id))
        return proposal_from_proto(resp.proposal)

    async def fetch_proposals_page(
        self,
        options: Optional[PageOptions] = None,
        *,
        status: Union[ProposalStatus, int] = ProposalStatus.UNSPECIFIED,
        voter: str = "",
        depositor: str = "",
    ) -> Page:
        """One page of proposals; empty filters (and ``UNSPECIFIED`` status) match everything."""
        options = options or PageOptions()
        req = message_class(_G + "QueryProposalsRequest")(
            proposal_status=int(status), voter=voter, depositor=depositor
        )
        apply_pagination(req, options)
        resp = await self._call("Proposals", req)
        return page_of([proposal_from_proto(p) for p in resp.proposals], resp, options)

    def proposals(
        self,
        options: Optional[PageOptions] = None,
        *,
        status: Union[ProposalStatus, int] = ProposalStatus.UNSPECIFIED,
        voter: str = "",
        depositor: str = "",
    ) -> EntityStream:
        fetch = partial(self.fetch_proposals_page, status=status, voter=voter, depositor=depositor)
        return EntityStream(fetch, options or PageOptions(), label="proposal")

    async def tally_result(self, proposal_id: int) -> TallyResult:
        resp = await self._lookup("TallyResult", "proposal", str(proposal_id), proposal_id=proposal_id)
        return tally_from_proto(resp.tally)

    # ---- votes ----

    async def vote(self, proposal_id: int, voter: str) -> ProposalVote:
        key = f"{proposal_id}/{voter}"
        resp = await self._lookup("Vote", "vote", key, proposal_id=proposal_id, voter=voter)
        if not resp.HasField("vote"):
            raise NotFound(what="vote", key=key)
        return vote_from_proto(resp.vote)

    async def fetch_votes_page(self, proposal_id: int, options: Optional[PageOptions] = None) -> Page:
        options = options or PageOptions()
        req = message_class(_G + "QueryVotesRequest")(proposal_id=proposal_id)
        apply_pagination(req, options)
        resp = await self._call("Votes", req)
        return page_of([vote_from_proto(v) for v in resp.votes], resp, options)

    def votes(self, proposal_id: int, options: Optional[PageOptions] = None) -> EntityStream:
        return EntityStream(partial(self.fetch_votes_page, proposal_id), options or PageOptions(), label="vote")

    # ---- deposits ----

    async def deposit(self, proposal_id: int, depositor: str) -> ProposalDeposit:
        key = f"{proposal_id}/{depositor}"
        resp = await self._lookup("Deposit", "deposit", key, proposal_id=proposal_id, depositor=depositor)
        if not resp.HasField("deposit"):
            raise NotFound(what="deposit", key=key)
        return deposit_from_proto(resp.deposit)

    async def fetch_deposits_page(self, proposal_id: int, options: Optional[PageOptions] = None) -> Page:
        options = options or PageOptions()
        req = message_class(_G + "QueryDepositsRequest")(proposal_id=proposal_id)
        apply_pagination(req, options)
        resp = await self._call("Deposits", req)
        return page_of([deposit_from_proto(d) for d in resp.deposits], resp, options)

    def deposits(self, proposal_id: int, options: Optional[PageOptions] = None) -> EntityStream:
        return EntityStream(
            partial(self.fetch_deposits_page, proposal_id), options or PageOptions(), label="deposit"
        )

    # ---- params ----

    async def params(self, params_type: Optional[str] = None) -> GovParams:
        """
        Module parameters. ``params_type`` is one of ``voting``, ``deposit``,
        ``tallying``; None queries all three and merges them.
        """
        if params_type is None:
            merged = GovParams()
            for kind in PARAMS_TYPES:
                part = await self.params(kind)
                if kind == "voting":
                    merged.voting_period = part.voting_period
                elif kind == "deposit":
                    merged.min_deposit, merged.max_deposit_period = part.min_deposit, part.max_deposit_period
                else:
                    merged.quorum, merged.threshold, merged.veto_threshold = (
                        part.quorum,
                        part.threshold,
                        part.veto_threshold,
                    )
            return merged
        if params_type not in PARAMS_TYPES:
            raise ValueError(f"params_type must be one of {', '.join(PARAMS_TYPES)}, got {params_type!r}")
        req = message_class(_G + "QueryParamsRequest")(params_type=params_type)
        resp = await self._call("Params", req)
        log.debug("gov %s params fetched", params_type)
        return params_from_proto(resp)


__all__ = ["GOV_QUERY", "GovQueryClient"]
