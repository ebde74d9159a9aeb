from datetime import datetime, timedelta, timezone

import pytest
from conftest import CHAIN_ID

from gevulot_sdk import ClientConfig, GevulotClient
from gevulot_sdk import address as addr
from gevulot_sdk.codec import (intent_to_proto, params_from_proto,
                               proposal_from_proto, vote_from_proto)
from gevulot_sdk.codec.intents import decode_response
from gevulot_sdk.errors import InvalidIntent, MalformedMessage, NotFound
from gevulot_sdk.proto import message_class, pack_any, unpack_any
from gevulot_sdk.query.client import PageOptions
from gevulot_sdk.tx.encode import unpack_signed
from gevulot_sdk.tx.send import Committed
from gevulot_sdk.types.entities import Coin
from gevulot_sdk.types.gov import (Deposit, Plan, ProposalStatus, RawContent,
                                   SoftwareUpgrade, SubmitProposal,
                                   TextProposal, Vote, VoteOption,
                                   VoteWeighted, WeightedVoteOption)

ME = "gvlt1voter"
G = "cosmos.gov.v1beta1."


class _Rpc:
    async def close(self):
        pass


@pytest.fixture
def client(ledger, key, clock):
    config = ClientConfig(chain_id=CHAIN_ID, max_attempts=3, max_elapsed=None)
    return GevulotClient(key, config, transport=ledger, rpc=_Rpc(), sleep=clock.sleep, clock=clock)


def _sent(ledger, type_name):
    raw = ledger.calls_to("BroadcastTx")[-1].tx_bytes
    body_bytes, _, _ = unpack_signed(raw)
    body = message_class("cosmos.tx.v1beta1.TxBody").FromString(body_bytes)
    return unpack_any(body.messages[0], message_class(type_name))


def _proposal(pid, title="t", status=ProposalStatus.VOTING_PERIOD):
    msg = message_class(G + "Proposal")(proposal_id=pid, status=int(status))
    msg.content.CopyFrom(pack_any(message_class(G + "TextProposal")(title=title)))
    return msg


# ---------- Shape validation ----------


@pytest.mark.parametrize(
    "intent",
    [
        SubmitProposal(proposer=ME, content=TextProposal(title="Raise gas price")),
        SubmitProposal(
            proposer=ME,
            content=SoftwareUpgrade(plan=Plan(name="v2", height=1000), authority="gvlt1gov"),
            initial_deposit=(Coin("ucredit", 10),),
        ),
        SubmitProposal(proposer=ME, content=RawContent(type_url="/cosmos.params.v1beta1.ParameterChangeProposal")),
        Vote(voter=ME, proposal_id=1, option=VoteOption.NO_WITH_VETO),
        VoteWeighted(
            voter=ME,
            proposal_id=1,
            options=(WeightedVoteOption(VoteOption.YES, "0.7"), WeightedVoteOption(VoteOption.ABSTAIN, "0.3")),
        ),
        Deposit(depositor=ME, proposal_id=3, amount=(Coin("ucredit", 5),)),
    ],
)
def test_well_formed_gov_intents_validate(intent):
    intent.validate()


@pytest.mark.parametrize(
    "intent,field",
    [
        (SubmitProposal(proposer=ME, content=TextProposal(title=" ")), "content.title"),
        (SubmitProposal(proposer=ME, content=None), "content"),
        (SubmitProposal(proposer=ME, content=SoftwareUpgrade(plan=Plan(name="v2"), authority="gvlt1gov")), "content.plan.height"),
        (SubmitProposal(proposer=ME, content=SoftwareUpgrade(plan=Plan(name="v2", height=9))), "content.authority"),
        (SubmitProposal(proposer=ME, content=RawContent(type_url="no-slash")), "content.type_url"),
        (SubmitProposal(proposer=ME, content=TextProposal(title="x"), initial_deposit=(Coin("ucredit", 0),)), "initial_deposit"),
        (Vote(voter=ME, proposal_id=1), "option"),
        (Vote(voter=ME, proposal_id=1, option=VoteOption(9)), "option"),
        (Vote(voter=ME, proposal_id=0, option=VoteOption.YES), "proposal_id"),
        (Vote(proposal_id=1, option=VoteOption.YES), "voter"),
        (VoteWeighted(voter=ME, proposal_id=1), "options"),
        (
            VoteWeighted(voter=ME, proposal_id=1, options=(WeightedVoteOption(VoteOption.YES, "0.5"),)),
            "options.weight",
        ),
        (
            VoteWeighted(
                voter=ME,
                proposal_id=1,
                options=(WeightedVoteOption(VoteOption.YES, "0.5"), WeightedVoteOption(VoteOption.YES, "0.5")),
            ),
            "options",
        ),
        (
            VoteWeighted(
                voter=ME,
                proposal_id=1,
                options=(WeightedVoteOption(VoteOption.YES, "1.5"), WeightedVoteOption(VoteOption.NO, "-0.5")),
            ),
            "options.weight",
        ),
        (VoteWeighted(voter=ME, proposal_id=1, options=(WeightedVoteOption(VoteOption.YES, "lots"),)), "options.weight"),
        (Deposit(depositor=ME, proposal_id=1), "amount"),
    ],
)
def test_malformed_gov_intents_are_rejected(intent, field):
    with pytest.raises(InvalidIntent) as ei:
        intent.validate()
    assert ei.value.field == field


@pytest.mark.parametrize(
    "value,expected",
    [
        ("yes", VoteOption.YES),
        ("No-With-Veto", VoteOption.NO_WITH_VETO),
        ("VOTE_OPTION_ABSTAIN", VoteOption.ABSTAIN),
        (3, VoteOption.NO),
        (VoteOption.YES, VoteOption.YES),
    ],
)
def test_vote_option_parse(value, expected):
    assert VoteOption.parse(value) is expected


def test_vote_option_parse_rejects_unknown_names():
    with pytest.raises(ValueError):
        VoteOption.parse("maybe")


def test_gov_module_address():
    assert addr.module_address("gov", hrp="cosmos") == "cosmos10d07y265gmmuvt4z0w9aw880jnsr700j6zn9kn"
    assert addr.validate(addr.module_address("gov"), expected_hrp="gvlt")


# ---------- Codec ----------


def test_weighted_vote_weights_travel_as_scaled_integers():
    intent = VoteWeighted(
        voter=ME,
        proposal_id=4,
        options=(WeightedVoteOption(VoteOption.YES, "0.7"), WeightedVoteOption(VoteOption.NO, "0.3")),
    )
    msg = intent_to_proto(intent)
    assert [(o.option, o.weight) for o in msg.options] == [(1, "700000000000000000"), (3, "300000000000000000")]

    back = vote_from_proto(message_class(G + "Vote")(proposal_id=4, voter=ME, options=list(msg.options)))
    assert [(o.option, o.weight) for o in back.options] == [
        (VoteOption.YES, "0.700000000000000000"),
        (VoteOption.NO, "0.300000000000000000"),
    ]
    assert back.option is None


def test_legacy_vote_with_only_the_single_option():
    vote = vote_from_proto(message_class(G + "Vote")(proposal_id=2, voter=ME, option=3))
    assert vote.option is VoteOption.NO
    assert vote.options == [WeightedVoteOption(VoteOption.NO, "1")]


def test_submit_proposal_packs_the_upgrade_as_content():
    upgrade = SoftwareUpgrade(plan=Plan(name="v2", height=500, info="binaries"), authority="gvlt1gov")
    msg = intent_to_proto(SubmitProposal(proposer=ME, content=upgrade, initial_deposit=(Coin("ucredit", 7),)))

    assert msg.content.type_url == "/cosmos.upgrade.v1beta1.MsgSoftwareUpgrade"
    inner = unpack_any(msg.content, message_class("cosmos.upgrade.v1beta1.MsgSoftwareUpgrade"))
    assert (inner.authority, inner.plan.name, inner.plan.height, inner.plan.info) == ("gvlt1gov", "v2", 500, "binaries")
    assert [(c.denom, c.amount) for c in msg.initial_deposit] == [("ucredit", "7")]
    assert msg.proposer == ME


def test_proposal_decodes_content_times_and_tally():
    msg = _proposal(9, title="Cut fees", status=ProposalStatus.PASSED)
    msg.submit_time.seconds = 1_700_000_000
    msg.voting_end_time.seconds, msg.voting_end_time.nanos = 1_700_086_400, 500_000_000
    msg.final_tally_result.yes, msg.final_tally_result.no = "60", "40"
    msg.total_deposit.add(denom="ucredit", amount="1000")

    p = proposal_from_proto(msg)

    assert p.proposal_id == 9
    assert p.content == TextProposal(title="Cut fees")
    assert p.title == "Cut fees"
    assert p.status is ProposalStatus.PASSED and p.status.is_final
    assert p.submit_time == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert p.voting_end_time == datetime(2023, 11, 15, 22, 13, 20, 500_000, tzinfo=timezone.utc)
    assert p.deposit_end_time is None
    assert p.final_tally_result.total == 100
    assert p.total_deposit == [Coin("ucredit", 1000)]


def test_unknown_content_and_status_are_kept():
    msg = message_class(G + "Proposal")(proposal_id=1, status=42)
    msg.content.type_url = "/cosmos.distribution.v1beta1.CommunityPoolSpendProposal"
    msg.content.value = b"\x0a\x01x"

    p = proposal_from_proto(msg)
    assert p.content == RawContent(type_url="/cosmos.distribution.v1beta1.CommunityPoolSpendProposal", value=b"\x0a\x01x")
    assert not p.status.is_known
    assert int(p.status) == 42


def test_params_decode_durations_and_decimals():
    resp = message_class(G + "QueryParamsResponse")()
    resp.voting_params.voting_period.seconds = 172_800
    resp.deposit_params.min_deposit.add(denom="ucredit", amount="10000000")
    resp.deposit_params.max_deposit_period.seconds = 86_400
    resp.tally_params.quorum = b"334000000000000000"
    resp.tally_params.threshold = b"500000000000000000"
    resp.tally_params.veto_threshold = b"334000000000000000"

    params = params_from_proto(resp)
    assert params.voting_period == timedelta(days=2)
    assert params.max_deposit_period == timedelta(days=1)
    assert params.min_deposit == [Coin("ucredit", 10_000_000)]
    assert (params.quorum, params.threshold) == ("0.334000000000000000", "0.500000000000000000")


def test_proposal_response_without_an_id_is_malformed():
    intent = SubmitProposal(proposer=ME, content=TextProposal(title="x"))
    with pytest.raises(MalformedMessage):
        decode_response(intent, pack_any(message_class(G + "MsgSubmitProposalResponse")()))
    assert decode_response(intent, pack_any(message_class(G + "MsgSubmitProposalResponse")(proposal_id=12))) == 12


# ---------- Transactions through the facade ----------


@pytest.mark.asyncio
async def test_submit_proposal_returns_the_new_id(client, ledger, key):
    pid = await client.submit_proposal(TextProposal(title="Lower fees", description="why not"), deposit=250)

    assert pid == 1
    msg = _sent(ledger, G + "MsgSubmitProposal")
    assert msg.proposer == key.address()
    assert [(c.denom, c.amount) for c in msg.initial_deposit] == [("ucredit", "250")]
    text = unpack_any(msg.content, message_class(G + "TextProposal"))
    assert (text.title, text.description) == ("Lower fees", "why not")


@pytest.mark.asyncio
async def test_software_upgrade_defaults_to_the_gov_authority(client, ledger, key):
    pid = await client.submit_software_upgrade("v2", 12_000, info="https://example.org/v2.json", deposit=10)

    assert pid == 1
    msg = _sent(ledger, G + "MsgSubmitProposal")
    assert msg.proposer == key.address()
    assert [(c.denom, c.amount) for c in msg.initial_deposit] == [("ucredit", "10")]
    upgrade = unpack_any(msg.content, message_class("cosmos.upgrade.v1beta1.MsgSoftwareUpgrade"))
    assert upgrade.authority == client.gov_authority == addr.module_address("gov")
    assert (upgrade.plan.name, upgrade.plan.height) == ("v2", 12_000)


@pytest.mark.asyncio
async def test_vote_and_deposit_are_signed_by_the_session(client, ledger, key):
    result = await client.vote(3, "no")
    assert isinstance(result, Committed)
    msg = _sent(ledger, G + "MsgVote")
    assert (msg.proposal_id, msg.voter, msg.option) == (3, key.address(), int(VoteOption.NO))

    await client.vote_weighted(3, {"yes": "0.25", VoteOption.ABSTAIN: "0.75"})
    msg = _sent(ledger, G + "MsgVoteWeighted")
    assert msg.voter == key.address()
    assert [(o.option, o.weight) for o in msg.options] == [(1, "250000000000000000"), (2, "750000000000000000")]

    await client.deposit(3, 42)
    msg = _sent(ledger, G + "MsgDeposit")
    assert (msg.depositor, [(c.denom, c.amount) for c in msg.amount]) == (key.address(), [("ucredit", "42")])
    assert [b.sequence for b in ledger.broadcasts] == [5, 6, 7]


@pytest.mark.asyncio
async def test_bad_gov_arguments_raise_before_sending(client, ledger):
    with pytest.raises(InvalidIntent):
        await client.vote(1, "maybe")
    with pytest.raises(InvalidIntent):
        await client.vote_weighted(1, {"yes": "0.6", "no": "0.6"})
    with pytest.raises(InvalidIntent):
        await client.deposit(1, 0)
    with pytest.raises(InvalidIntent):
        await client.submit_software_upgrade("v2", 0)
    assert ledger.broadcasts == []


# ---------- Queries ----------


@pytest.mark.asyncio
async def test_get_proposal_and_tally(client, ledger):
    ledger.gov_answers["Proposal"] = lambda req, cls: cls(proposal=_proposal(req.proposal_id, title="Cut fees"))
    tally = message_class(G + "TallyResult")(yes="5", abstain="1", no="2", no_with_veto="0")
    ledger.gov_answers["TallyResult"] = message_class(G + "QueryTallyResultResponse")(tally=tally)

    proposal = await client.get_proposal(7)
    assert (proposal.proposal_id, proposal.title) == (7, "Cut fees")
    result = await client.get_tally_result(7)
    assert (result.yes, result.abstain, result.no, result.total) == (5, 1, 2, 8)


@pytest.mark.asyncio
async def test_missing_proposal_vote_and_deposit_raise_not_found(client, key):
    with pytest.raises(NotFound) as ei:
        await client.get_proposal(404)
    assert (ei.value.what, ei.value.key) == ("proposal", "404")

    with pytest.raises(NotFound) as ei:
        await client.get_vote(404)
    assert (ei.value.what, ei.value.key) == ("vote", f"404/{key.address()}")

    with pytest.raises(NotFound) as ei:
        await client.get_deposit(404, "gvlt1someone")
    assert ei.value.what == "deposit"


@pytest.mark.asyncio
async def test_list_proposals_filters_and_walks_every_page(client, ledger):
    proposals = [_proposal(i) for i in range(1, 6)]

    def answer(req, cls):
        start = int(req.pagination.key.decode() or "0")
        page = proposals[start : start + req.pagination.limit]
        end = start + len(page)
        resp = cls(proposals=page)
        resp.pagination.next_key = str(end).encode() if end < len(proposals) else b""
        return resp

    ledger.gov_answers["Proposals"] = answer
    stream = client.list_proposals(PageOptions(limit=2), status=ProposalStatus.VOTING_PERIOD, voter="gvlt1v")
    got = await stream.collect()

    assert [p.proposal_id for p in got] == [1, 2, 3, 4, 5]
    assert stream.pages_fetched == 3
    requests = ledger.calls_to("Proposals")
    assert {(r.proposal_status, r.voter, r.depositor) for r in requests} == {(2, "gvlt1v", "")}


@pytest.mark.asyncio
async def test_list_votes_and_deposits(client, ledger):
    votes = message_class(G + "QueryVotesResponse")()
    votes.votes.add(proposal_id=1, voter="gvlt1a", option=1)
    votes.votes.add(proposal_id=1, voter="gvlt1b", option=3)
    ledger.gov_answers["Votes"] = votes
    deposits = message_class(G + "QueryDepositsResponse")()
    deposits.deposits.add(proposal_id=1, depositor="gvlt1a").amount.add(denom="ucredit", amount="9")
    ledger.gov_answers["Deposits"] = deposits

    got = await client.list_votes(1).collect()
    assert [(v.voter, v.option) for v in got] == [("gvlt1a", VoteOption.YES), ("gvlt1b", VoteOption.NO)]
    got = await client.list_deposits(1).collect()
    assert [(d.depositor, d.amount) for d in got] == [("gvlt1a", [Coin("ucredit", 9)])]
    assert ledger.calls_to("Votes")[0].proposal_id == 1


@pytest.mark.asyncio
async def test_gov_params_merges_the_three_groups(client, ledger):
    def answer(req, cls):
        resp = cls()
        if req.params_type == "voting":
            resp.voting_params.voting_period.seconds = 3600
        elif req.params_type == "deposit":
            resp.deposit_params.min_deposit.add(denom="ucredit", amount="100")
        else:
            resp.tally_params.quorum = b"400000000000000000"
        return resp

    ledger.gov_answers["Params"] = answer

    params = await client.gov_params()
    assert params.voting_period == timedelta(hours=1)
    assert params.min_deposit == [Coin("ucredit", 100)]
    assert params.quorum == "0.400000000000000000"
    assert [r.params_type for r in ledger.calls_to("Params")] == ["voting", "deposit", "tallying"]

    only = await client.gov_params("deposit")
    assert only.voting_period is None and only.min_deposit == [Coin("ucredit", 100)]

    with pytest.raises(ValueError):
        await client.gov_params("bogus")
