import pytest
from conftest import CHAIN_ID

from gevulot_sdk.errors import InvalidIntent, MalformedMessage
from gevulot_sdk.proto import message_class, unpack_any
from gevulot_sdk.tx.build import (SIGN_MODE_DIRECT, SIMULATION_GAS_LIMIT,
                                  GasParams, TransactionBuilder)
from gevulot_sdk.tx.encode import (pack_for_simulation, pack_signed,
                                   sign_bytes, tx_hash, unpack_signed)
from gevulot_sdk.types.entities import Coin
from gevulot_sdk.types.intents import (AcceptTask, DeleteTask,
                                       SudoDeleteWorker)
from gevulot_sdk.wallet import verify_signature


def _build(key, intents, **kw):
    kw.setdefault("gas_params", GasParams())
    return TransactionBuilder(CHAIN_ID).build(
        intents,
        sequence=kw.pop("sequence", 3),
        account_number=kw.pop("account_number", 12),
        public_key=key.public_key,
        signer=key.address(),
        **kw,
    )


# ---------- Gas & fees ----------


@pytest.mark.parametrize(
    "gas_used,multiplier,expected",
    [(80_000, 1.2, 96_001), (100_000, 1.0, 100_001), (1, 1.5, 3), (0, 1.2, 1), (33_333, 1.3, 43_334)],
)
def test_limit_from_simulation(gas_used, multiplier, expected):
    assert GasParams(gas_multiplier=multiplier).limit_from_simulation(gas_used) == expected


def test_fee_rounds_up():
    p = GasParams(gas_price=0.025, denom="ucredit")
    assert p.fee_for(200_000) == Coin(denom="ucredit", amount=5000)
    assert p.fee_for(1) == Coin(denom="ucredit", amount=1)
    assert GasParams(gas_price=0.0).fee_for(1_000) == Coin(denom="ucredit", amount=0)


# ---------- Envelope ----------


def test_envelope_keeps_order_and_fills_the_signer(key):
    env = _build(key, [AcceptTask(task_id="t1", worker_id="w1"), DeleteTask(id="t2")], gas_limit=150_000)

    body = message_class("cosmos.tx.v1beta1.TxBody").FromString(env.body_bytes)
    assert [m.type_url for m in body.messages] == [
        "/gevulot.gevulot.MsgAcceptTask",
        "/gevulot.gevulot.MsgDeleteTask",
    ]
    accept = unpack_any(body.messages[0], message_class("gevulot.gevulot.MsgAcceptTask"))
    assert accept.creator == key.address()
    assert env.intents[1].creator == key.address()
    assert len(env) == 2


def test_auth_info_carries_key_sequence_and_fee(key):
    env = _build(key, [DeleteTask(id="t1")], sequence=9, gas_limit=150_000)

    auth = message_class("cosmos.tx.v1beta1.AuthInfo").FromString(env.auth_info_bytes)
    si = auth.signer_infos[0]
    pub = unpack_any(si.public_key, message_class("cosmos.crypto.secp256k1.PubKey"))
    assert bytes(pub.key) == key.public_key
    assert si.sequence == 9
    assert si.mode_info.single.mode == SIGN_MODE_DIRECT
    assert auth.fee.gas_limit == 150_000
    assert [(c.denom, c.amount) for c in auth.fee.amount] == [("ucredit", "3750")]
    assert env.fee == Coin(denom="ucredit", amount=3750)


def test_gas_limit_precedence(key):
    assert _build(key, [DeleteTask(id="t")]).gas_limit == SIMULATION_GAS_LIMIT
    assert _build(key, [DeleteTask(id="t")], gas_params=GasParams(gas_limit=123_000)).gas_limit == 123_000
    assert _build(key, [DeleteTask(id="t")], gas_params=GasParams(gas_limit=123_000), gas_limit=7_000).gas_limit == 7_000
    with pytest.raises(InvalidIntent):
        _build(key, [DeleteTask(id="t")], gas_limit=0)


def test_explicit_signer_field_is_kept(key):
    env = _build(key, [SudoDeleteWorker(authority="gvlt1gov", id="w1")], gas_limit=100_000)
    assert env.intents[0].authority == "gvlt1gov"


def test_empty_or_bad_batches_are_rejected(key):
    with pytest.raises(InvalidIntent):
        _build(key, [])
    with pytest.raises(InvalidIntent):
        _build(key, ["not an intent"])
    with pytest.raises(InvalidIntent):
        _build(key, [DeleteTask()])


def test_builder_needs_a_chain_id():
    with pytest.raises(ValueError):
        TransactionBuilder("")


# ---------- Encoding & signing ----------


def test_sign_bytes_are_deterministic_and_bound_to_chain(key):
    env = _build(key, [DeleteTask(id="t1")], gas_limit=100_000)
    again = _build(key, [DeleteTask(id="t1")], gas_limit=100_000)
    other_chain = TransactionBuilder("other-chain").build(
        [DeleteTask(id="t1")],
        sequence=3,
        account_number=12,
        public_key=key.public_key,
        signer=key.address(),
        gas_params=GasParams(),
        gas_limit=100_000,
    )
    assert sign_bytes(env) == sign_bytes(again)
    assert sign_bytes(env) != sign_bytes(other_chain)

    doc = message_class("cosmos.tx.v1beta1.SignDoc").FromString(sign_bytes(env))
    assert (doc.chain_id, doc.account_number) == (CHAIN_ID, 12)
    assert bytes(doc.body_bytes) == env.body_bytes


def test_signed_tx_roundtrip_and_hash(key):
    env = _build(key, [DeleteTask(id="t1")], gas_limit=100_000)
    sig = key.sign(sign_bytes(env))
    raw = pack_signed(env, sig)

    body, auth, sigs = unpack_signed(raw)
    assert (body, auth, sigs) == (env.body_bytes, env.auth_info_bytes, [sig])
    assert verify_signature(key.public_key, sign_bytes(env), sigs[0])

    h = tx_hash(raw)
    assert len(h) == 64 and h == h.upper()
    assert tx_hash(raw) == h


def test_simulation_tx_has_an_empty_signature(key):
    env = _build(key, [DeleteTask(id="t1")])
    _, _, sigs = unpack_signed(pack_for_simulation(env))
    assert sigs == [b""]


def test_pack_signed_checks_signature_length(key):
    env = _build(key, [DeleteTask(id="t1")])
    with pytest.raises(ValueError):
        pack_signed(env, b"\x00" * 63)


def test_unpack_rejects_garbage():
    with pytest.raises(MalformedMessage):
        unpack_signed(b"\x0a\xff")
