"""
Wire schema for the Gevulot ledger and the Cosmos SDK subset the client drives.

The message definitions are declared here as ``FileDescriptorProto``s and
registered in a private ``DescriptorPool`` at import time, so no generated
``*_pb2`` modules are needed and nothing leaks into the process-wide default
pool (other Cosmos libraries can coexist).

Field numbers and scalar types follow the ledger's ``.proto`` files; field
*names* use snake_case for Python ergonomics (names never reach the wire).
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple, Union

from google.protobuf import (any_pb2, descriptor_pb2, descriptor_pool,
                            duration_pb2, timestamp_pb2)

_F = descriptor_pb2.FieldDescriptorProto

_SCALARS = {
    "string": _F.TYPE_STRING,
    "bytes": _F.TYPE_BYTES,
    "bool": _F.TYPE_BOOL,
    "uint64": _F.TYPE_UINT64,
    "int64": _F.TYPE_INT64,
    "uint32": _F.TYPE_UINT32,
    "int32": _F.TYPE_INT32,
}

FieldSpec = Union[Tuple[str, int, str], Tuple[str, int, str, bool]]

ANY = ".google.protobuf.Any"
COIN = ".cosmos.base.v1beta1.Coin"
PAGE_REQ = ".cosmos.base.query.v1beta1.PageRequest"
PAGE_RESP = ".cosmos.base.query.v1beta1.PageResponse"
TIMESTAMP = ".google.protobuf.Timestamp"
DURATION = ".google.protobuf.Duration"
G = ".gevulot.gevulot."
TX = ".cosmos.tx.v1beta1."
ABCI = ".cosmos.base.abci.v1beta1."
GOV = ".cosmos.gov.v1beta1."

REPEATED = True


def _field(name: str, number: int, kind: str, repeated: bool = False) -> descriptor_pb2.FieldDescriptorProto:
    f = _F(
        name=name,
        number=number,
        label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
    )
    if kind in _SCALARS:
        f.type = _SCALARS[kind]
    elif kind.startswith("enum:"):
        f.type = _F.TYPE_ENUM
        f.type_name = kind[len("enum:"):]
    else:
        f.type = _F.TYPE_MESSAGE
        f.type_name = kind
    return f


def _enum(name: str, values: Sequence[str]) -> descriptor_pb2.EnumDescriptorProto:
    e = descriptor_pb2.EnumDescriptorProto(name=name)
    for number, value in enumerate(values):
        e.value.add(name=value, number=number)
    return e


def _message(
    name: str,
    fields: Iterable[FieldSpec] = (),
    *,
    nested: Iterable[descriptor_pb2.DescriptorProto] = (),
    enums: Iterable[descriptor_pb2.EnumDescriptorProto] = (),
    map_entry: bool = False,
) -> descriptor_pb2.DescriptorProto:
    m = descriptor_pb2.DescriptorProto(name=name)
    for spec in fields:
        m.field.append(_field(*spec))
    m.nested_type.extend(nested)
    m.enum_type.extend(enums)
    if map_entry:
        m.options.map_entry = True
    return m


def _file(
    name: str,
    package: str,
    messages: Iterable[descriptor_pb2.DescriptorProto],
    *,
    enums: Iterable[descriptor_pb2.EnumDescriptorProto] = (),
    deps: Sequence[str] = (),
) -> descriptor_pb2.FileDescriptorProto:
    fd = descriptor_pb2.FileDescriptorProto(name=name, package=package, syntax="proto3")
    fd.dependency.extend(deps)
    fd.message_type.extend(messages)
    fd.enum_type.extend(enums)
    return fd


# -----------------------------------------------------------------------------
# Cosmos SDK subset
# -----------------------------------------------------------------------------

_COIN = _file(
    "cosmos/base/v1beta1/coin.proto",
    "cosmos.base.v1beta1",
    [_message("Coin", [("denom", 1, "string"), ("amount", 2, "string")])],
)

_PAGINATION = _file(
    "cosmos/base/query/v1beta1/pagination.proto",
    "cosmos.base.query.v1beta1",
    [
        _message(
            "PageRequest",
            [
                ("key", 1, "bytes"),
                ("offset", 2, "uint64"),
                ("limit", 3, "uint64"),
                ("count_total", 4, "bool"),
                ("reverse", 5, "bool"),
            ],
        ),
        _message("PageResponse", [("next_key", 1, "bytes"), ("total", 2, "uint64")]),
    ],
)

_SECP256K1 = _file(
    "cosmos/crypto/secp256k1/keys.proto",
    "cosmos.crypto.secp256k1",
    [_message("PubKey", [("key", 1, "bytes")])],
)

_SIGNING = _file(
    "cosmos/tx/signing/v1beta1/signing.proto",
    "cosmos.tx.signing.v1beta1",
    [],
    enums=[_enum("SignMode", ["SIGN_MODE_UNSPECIFIED", "SIGN_MODE_DIRECT"])],
)

_TENDERMINT_ABCI = _file(
    "tendermint/abci/types.proto",
    "tendermint.abci",
    [
        _message(
            "EventAttribute",
            [("key", 1, "string"), ("value", 2, "string"), ("index", 3, "bool")],
        ),
        _message(
            "Event",
            [("type", 1, "string"), ("attributes", 2, ".tendermint.abci.EventAttribute", REPEATED)],
        ),
    ],
)

_ABCI = _file(
    "cosmos/base/abci/v1beta1/abci.proto",
    "cosmos.base.abci.v1beta1",
    [
        _message(
            "TxResponse",
            [
                ("height", 1, "int64"),
                ("txhash", 2, "string"),
                ("codespace", 3, "string"),
                ("code", 4, "uint32"),
                ("data", 5, "string"),
                ("raw_log", 6, "string"),
                ("info", 8, "string"),
                ("gas_wanted", 9, "int64"),
                ("gas_used", 10, "int64"),
                ("tx", 11, ANY),
                ("timestamp", 12, "string"),
                ("events", 13, ".tendermint.abci.Event", REPEATED),
            ],
        ),
        _message("GasInfo", [("gas_wanted", 1, "uint64"), ("gas_used", 2, "uint64")]),
        _message(
            "Result",
            [
                ("data", 1, "bytes"),
                ("log", 2, "string"),
                ("events", 3, ".tendermint.abci.Event", REPEATED),
                ("msg_responses", 4, ANY, REPEATED),
            ],
        ),
        _message("TxMsgData", [("msg_responses", 2, ANY, REPEATED)]),
    ],
    deps=["google/protobuf/any.proto", "tendermint/abci/types.proto"],
)

_TX = _file(
    "cosmos/tx/v1beta1/tx.proto",
    "cosmos.tx.v1beta1",
    [
        _message(
            "TxBody",
            [
                ("messages", 1, ANY, REPEATED),
                ("memo", 2, "string"),
                ("timeout_height", 3, "uint64"),
            ],
        ),
        _message(
            "ModeInfo",
            [("single", 1, TX + "ModeInfo.Single")],
            nested=[_message("Single", [("mode", 1, "enum:.cosmos.tx.signing.v1beta1.SignMode")])],
        ),
        _message(
            "SignerInfo",
            [("public_key", 1, ANY), ("mode_info", 2, TX + "ModeInfo"), ("sequence", 3, "uint64")],
        ),
        _message(
            "Fee",
            [
                ("amount", 1, COIN, REPEATED),
                ("gas_limit", 2, "uint64"),
                ("payer", 3, "string"),
                ("granter", 4, "string"),
            ],
        ),
        _message(
            "AuthInfo",
            [("signer_infos", 1, TX + "SignerInfo", REPEATED), ("fee", 2, TX + "Fee")],
        ),
        _message(
            "SignDoc",
            [
                ("body_bytes", 1, "bytes"),
                ("auth_info_bytes", 2, "bytes"),
                ("chain_id", 3, "string"),
                ("account_number", 4, "uint64"),
            ],
        ),
        _message(
            "TxRaw",
            [
                ("body_bytes", 1, "bytes"),
                ("auth_info_bytes", 2, "bytes"),
                ("signatures", 3, "bytes", REPEATED),
            ],
        ),
        _message(
            "Tx",
            [
                ("body", 1, TX + "TxBody"),
                ("auth_info", 2, TX + "AuthInfo"),
                ("signatures", 3, "bytes", REPEATED),
            ],
        ),
        _message(
            "BroadcastTxRequest",
            [("tx_bytes", 1, "bytes"), ("mode", 2, "enum:" + TX + "BroadcastMode")],
        ),
        _message("BroadcastTxResponse", [("tx_response", 1, ABCI + "TxResponse")]),
        _message("SimulateRequest", [("tx", 1, TX + "Tx"), ("tx_bytes", 2, "bytes")]),
        _message(
            "SimulateResponse",
            [("gas_info", 1, ABCI + "GasInfo"), ("result", 2, ABCI + "Result")],
        ),
        _message("GetTxRequest", [("hash", 1, "string")]),
        _message(
            "GetTxResponse",
            [("tx", 1, TX + "Tx"), ("tx_response", 2, ABCI + "TxResponse")],
        ),
    ],
    enums=[
        _enum(
            "BroadcastMode",
            [
                "BROADCAST_MODE_UNSPECIFIED",
                "BROADCAST_MODE_BLOCK",
                "BROADCAST_MODE_SYNC",
                "BROADCAST_MODE_ASYNC",
            ],
        )
    ],
    deps=[
        "google/protobuf/any.proto",
        "cosmos/base/v1beta1/coin.proto",
        "cosmos/tx/signing/v1beta1/signing.proto",
        "cosmos/base/abci/v1beta1/abci.proto",
    ],
)

_AUTH = _file(
    "cosmos/auth/v1beta1/auth.proto",
    "cosmos.auth.v1beta1",
    [
        _message(
            "BaseAccount",
            [
                ("address", 1, "string"),
                ("pub_key", 2, ANY),
                ("account_number", 3, "uint64"),
                ("sequence", 4, "uint64"),
            ],
        ),
        _message("QueryAccountRequest", [("address", 1, "string")]),
        _message("QueryAccountResponse", [("account", 1, ANY)]),
    ],
    deps=["google/protobuf/any.proto"],
)

_BANK = _file(
    "cosmos/bank/v1beta1/bank.proto",
    "cosmos.bank.v1beta1",
    [
        _message(
            "MsgSend",
            [("from_address", 1, "string"), ("to_address", 2, "string"), ("amount", 3, COIN, REPEATED)],
        ),
        _message("MsgSendResponse"),
        _message("QueryBalanceRequest", [("address", 1, "string"), ("denom", 2, "string")]),
        _message("QueryBalanceResponse", [("balance", 1, COIN)]),
    ],
    deps=["cosmos/base/v1beta1/coin.proto"],
)


# -----------------------------------------------------------------------------
# gevulot.gevulot
# -----------------------------------------------------------------------------


def _entities() -> List[descriptor_pb2.DescriptorProto]:
    return [
        _message("Label", [("key", 1, "string"), ("value", 2, "string")]),
        _message(
            "Metadata",
            [
                ("id", 1, "string"),
                ("creator", 2, "string"),
                ("name", 3, "string"),
                ("description", 4, "string"),
                ("tags", 5, "string", REPEATED),
                ("labels", 6, G + "Label", REPEATED),
                ("workflow_ref", 7, "string"),
            ],
        ),
        _message("TaskEnv", [("name", 1, "string"), ("value", 2, "string")]),
        _message("InputContext", [("source", 1, "string"), ("target", 2, "string")]),
        _message("OutputContext", [("source", 1, "string"), ("retention_period", 2, "uint64")]),
        # Worker
        _message(
            "WorkerSpec",
            [("cpus", 4, "uint64"), ("gpus", 5, "uint64"), ("memory", 6, "uint64"), ("disk", 7, "uint64")],
        ),
        _message(
            "WorkerStatus",
            [
                ("cpus_used", 1, "uint64"),
                ("gpus_used", 2, "uint64"),
                ("memory_used", 3, "uint64"),
                ("disk_used", 4, "uint64"),
                ("exit_announced_at", 5, "uint64"),
            ],
        ),
        _message(
            "Worker",
            [("metadata", 1, G + "Metadata"), ("spec", 3, G + "WorkerSpec"), ("status", 4, G + "WorkerStatus")],
        ),
        # Task
        _message(
            "TaskSpec",
            [
                ("image", 1, "string"),
                ("command", 2, "string", REPEATED),
                ("args", 3, "string", REPEATED),
                ("env", 4, G + "TaskEnv", REPEATED),
                ("input_contexts", 5, G + "InputContext", REPEATED),
                ("output_contexts", 6, G + "OutputContext", REPEATED),
                ("cpus", 7, "uint64"),
                ("gpus", 8, "uint64"),
                ("memory", 9, "uint64"),
                ("time", 10, "uint64"),
                ("store_stdout", 11, "bool"),
                ("store_stderr", 12, "bool"),
                ("workflow_ref", 13, "string"),
            ],
        ),
        _message(
            "TaskStatus",
            [
                ("state", 1, "enum:" + G + "TaskStatus.State"),
                ("created_at", 2, "uint64"),
                ("started_at", 3, "uint64"),
                ("completed_at", 4, "uint64"),
                ("assigned_workers", 5, "string", REPEATED),
                ("active_worker", 6, "string"),
                ("exit_code", 7, "int64"),
                ("stdout", 8, "string"),
                ("stderr", 9, "string"),
                ("output_contexts", 10, "string", REPEATED),
                ("error", 11, "string"),
            ],
            enums=[_enum("State", ["PENDING", "RUNNING", "DECLINED", "DONE", "FAILED"])],
        ),
        _message(
            "Task",
            [("metadata", 1, G + "Metadata"), ("spec", 2, G + "TaskSpec"), ("status", 3, G + "TaskStatus")],
        ),
        # Workflow
        _message(
            "WorkflowSpec",
            [("stages", 1, G + "WorkflowSpec.Stage", REPEATED)],
            nested=[_message("Stage", [("tasks", 1, G + "TaskSpec", REPEATED)])],
        ),
        _message(
            "WorkflowStatus",
            [
                ("state", 1, "enum:" + G + "WorkflowStatus.State"),
                ("current_stage", 2, "uint64"),
                ("stages", 3, G + "WorkflowStatus.StageState", REPEATED),
            ],
            nested=[
                _message(
                    "StageState",
                    [("task_ids", 1, "string", REPEATED), ("finished_tasks", 2, "uint64")],
                )
            ],
            enums=[_enum("State", ["PENDING", "RUNNING", "DONE", "FAILED"])],
        ),
        _message(
            "Workflow",
            [
                ("metadata", 1, G + "Metadata"),
                ("spec", 2, G + "WorkflowSpec"),
                ("status", 3, G + "WorkflowStatus"),
            ],
        ),
        # Proof
        _message(
            "ProofSpec",
            [
                ("prover_image", 1, "string"),
                ("verifier_image", 2, "string"),
                ("prover_command", 3, "string", REPEATED),
                ("verifier_command", 4, "string", REPEATED),
                ("prover_env", 5, "string", REPEATED),
                ("verifier_env", 6, "string", REPEATED),
                ("input_contexts", 7, "string", REPEATED),
                ("cpus", 8, "uint64"),
                ("gpus", 9, "uint64"),
                ("memory", 10, "uint64"),
                ("time", 11, "uint64"),
            ],
        ),
        _message("ProofStatus"),
        _message(
            "Proof",
            [
                ("id", 1, "string"),
                ("creator", 2, "string"),
                ("spec", 3, G + "ProofSpec"),
                ("status", 4, G + "ProofStatus"),
            ],
        ),
        # Pin
        _message(
            "PinSpec",
            [
                ("bytes", 1, "uint64"),
                ("time", 2, "uint64"),
                ("redundancy", 3, "uint64"),
                ("fallback_urls", 4, "string", REPEATED),
            ],
        ),
        _message(
            "PinAck",
            [
                ("worker", 1, "string"),
                ("block_height", 2, "uint64"),
                ("success", 3, "bool"),
                ("error", 4, "string"),
            ],
        ),
        _message(
            "PinStatus",
            [
                ("assigned_workers", 1, "string", REPEATED),
                ("worker_acks", 2, G + "PinAck", REPEATED),
                ("cid", 3, "string"),
            ],
        ),
        _message(
            "Pin",
            [("metadata", 1, G + "Metadata"), ("spec", 2, G + "PinSpec"), ("status", 3, G + "PinStatus")],
        ),
        # Params
        _message(
            "Params",
            [
                ("required_worker_stake", 1, "string"),
                ("worker_exit_delay", 2, "uint64"),
                ("cpu_price", 3, "string"),
                ("memory_price", 4, "string"),
                ("storage_price", 5, "string"),
                ("gpu_price", 6, "string"),
                ("cpu_node_base_price", 7, "string"),
                ("gpu_node_base_price", 8, "string"),
                ("dust_collector_address", 9, "string"),
                ("cpu_node_max_cpus", 10, "uint64"),
                ("cpu_node_max_memory", 11, "uint64"),
                ("gpu_node_max_cpus", 12, "uint64"),
                ("gpu_node_max_memory", 13, "uint64"),
                ("gpu_node_max_gpus", 14, "uint64"),
            ],
        ),
    ]


def _queries() -> List[descriptor_pb2.DescriptorProto]:
    out = [
        _message("QueryParamsRequest"),
        _message("QueryParamsResponse", [("params", 1, G + "Params")]),
    ]
    for kind, key in (("Worker", "id"), ("Task", "id"), ("Workflow", "id"), ("Proof", "id"), ("Pin", "cid")):
        field = kind.lower()
        out += [
            _message(f"QueryGet{kind}Request", [(key, 1, "string")]),
            _message(f"QueryGet{kind}Response", [(field, 1, G + kind)]),
            _message(f"QueryAll{kind}Request", [("pagination", 1, PAGE_REQ)]),
            _message(
                f"QueryAll{kind}Response",
                [(field, 1, G + kind, REPEATED), ("pagination", 2, PAGE_RESP)],
            ),
        ]
    return out


def _id_response(name: str) -> descriptor_pb2.DescriptorProto:
    return _message(name, [("id", 1, "string")])


def _msgs() -> List[descriptor_pb2.DescriptorProto]:
    return [
        _message(
            "MsgCreateWorker",
            [
                ("creator", 1, "string"),
                ("name", 2, "string"),
                ("description", 3, "string"),
                ("cpus", 4, "uint64"),
                ("gpus", 5, "uint64"),
                ("memory", 6, "uint64"),
                ("disk", 7, "uint64"),
                ("labels", 8, G + "Label", REPEATED),
                ("tags", 9, "string", REPEATED),
            ],
        ),
        _id_response("MsgCreateWorkerResponse"),
        _message(
            "MsgUpdateWorker",
            [
                ("creator", 1, "string"),
                ("id", 2, "string"),
                ("name", 3, "string"),
                ("description", 4, "string"),
                ("cpus", 5, "uint64"),
                ("gpus", 6, "uint64"),
                ("memory", 7, "uint64"),
                ("disk", 8, "uint64"),
                ("labels", 9, G + "Label", REPEATED),
                ("tags", 10, "string", REPEATED),
            ],
        ),
        _message("MsgUpdateWorkerResponse"),
        _message("MsgDeleteWorker", [("creator", 1, "string"), ("id", 2, "string")]),
        _message("MsgDeleteWorkerResponse"),
        _message("MsgAnnounceWorkerExit", [("creator", 1, "string"), ("worker_id", 2, "string")]),
        _message("MsgAnnounceWorkerExitResponse"),
        _message(
            "MsgCreateTask",
            [
                ("creator", 1, "string"),
                ("image", 2, "string"),
                ("command", 3, "string", REPEATED),
                ("args", 4, "string", REPEATED),
                ("env", 5, G + "TaskEnv", REPEATED),
                ("input_contexts", 6, G + "InputContext", REPEATED),
                ("output_contexts", 7, G + "OutputContext", REPEATED),
                ("cpus", 8, "uint64"),
                ("gpus", 9, "uint64"),
                ("memory", 10, "uint64"),
                ("time", 11, "uint64"),
                ("store_stdout", 12, "bool"),
                ("store_stderr", 13, "bool"),
                ("tags", 14, "string", REPEATED),
                ("labels", 15, G + "Label", REPEATED),
            ],
        ),
        _id_response("MsgCreateTaskResponse"),
        _message("MsgDeleteTask", [("creator", 1, "string"), ("id", 2, "string")]),
        _message("MsgDeleteTaskResponse"),
        _message("MsgRescheduleTask", [("creator", 1, "string"), ("id", 2, "string")]),
        _message("MsgRescheduleTaskResponse", [("primary", 1, "string"), ("secondary", 2, "string")]),
        _message(
            "MsgAcceptTask",
            [("creator", 1, "string"), ("worker_id", 2, "string"), ("task_id", 3, "string")],
        ),
        _message("MsgAcceptTaskResponse"),
        _message(
            "MsgDeclineTask",
            [
                ("creator", 1, "string"),
                ("worker_id", 2, "string"),
                ("task_id", 3, "string"),
                ("error", 4, "string"),
            ],
        ),
        _message("MsgDeclineTaskResponse"),
        _message(
            "MsgFinishTask",
            [
                ("creator", 1, "string"),
                ("task_id", 2, "string"),
                ("exit_code", 3, "int32"),
                ("stdout", 4, "string"),
                ("stderr", 5, "string"),
                ("output_contexts", 6, "string", REPEATED),
                ("error", 7, "string"),
            ],
        ),
        _message("MsgFinishTaskResponse"),
        _message("MsgCreateWorkflow", [("creator", 1, "string"), ("spec", 3, G + "WorkflowSpec")]),
        _id_response("MsgCreateWorkflowResponse"),
        _message("MsgDeleteWorkflow", [("creator", 1, "string"), ("id", 2, "string")]),
        _message("MsgDeleteWorkflowResponse"),
        _message(
            "MsgCreateProof",
            [
                ("creator", 1, "string"),
                ("labels", 2, G + "MsgCreateProof.LabelsEntry", REPEATED),
                ("prover_image", 3, "string"),
                ("verifier_image", 4, "string"),
                ("prover_command", 5, "string", REPEATED),
                ("verifier_command", 6, "string", REPEATED),
                ("prover_env", 7, "string", REPEATED),
                ("verifier_env", 8, "string", REPEATED),
                ("input_contexts", 9, "string", REPEATED),
                ("cpus", 10, "uint64"),
                ("gpus", 11, "uint64"),
                ("memory", 12, "uint64"),
                ("time", 13, "uint64"),
            ],
            nested=[
                _message(
                    "LabelsEntry",
                    [("key", 1, "string"), ("value", 2, "string")],
                    map_entry=True,
                )
            ],
        ),
        _id_response("MsgCreateProofResponse"),
        _message("MsgDeleteProof", [("creator", 1, "string"), ("id", 2, "string")]),
        _message("MsgDeleteProofResponse"),
        _message(
            "MsgCreatePin",
            [
                ("creator", 1, "string"),
                ("cid", 2, "string"),
                ("bytes", 3, "uint64"),
                ("time", 4, "uint64"),
                ("redundancy", 5, "uint64"),
                ("name", 6, "string"),
                ("description", 7, "string"),
                ("tags", 8, "string", REPEATED),
                ("labels", 9, G + "Label", REPEATED),
                ("fallback_urls", 10, "string", REPEATED),
            ],
        ),
        _id_response("MsgCreatePinResponse"),
        _message(
            "MsgDeletePin",
            [("creator", 1, "string"), ("cid", 2, "string"), ("id", 3, "string")],
        ),
        _message("MsgDeletePinResponse"),
        _message(
            "MsgAckPin",
            [
                ("creator", 1, "string"),
                ("worker_id", 2, "string"),
                ("cid", 3, "string"),
                ("id", 4, "string"),
                ("success", 5, "bool"),
                ("error", 6, "string"),
            ],
        ),
        _message("MsgAckPinResponse"),
        _message("MsgSudoDeleteWorker", [("authority", 1, "string"), ("id", 2, "string")]),
        _message("MsgSudoDeleteWorkerResponse"),
        _message("MsgSudoDeletePin", [("authority", 1, "string"), ("cid", 2, "string")]),
        _message("MsgSudoDeletePinResponse"),
        _message("MsgSudoDeleteTask", [("authority", 1, "string"), ("id", 2, "string")]),
        _message("MsgSudoDeleteTaskResponse"),
        _message("MsgSudoFreezeAccount", [("authority", 1, "string"), ("account", 2, "string")]),
        _message("MsgSudoFreezeAccountResponse"),
        _message("MsgUpdateParams", [("authority", 1, "string"), ("params", 2, G + "Params")]),
        _message("MsgUpdateParamsResponse"),
    ]


# -----------------------------------------------------------------------------
# Governance (cosmos.gov.v1beta1) and the upgrade plan it can carry
# -----------------------------------------------------------------------------

_UPGRADE = _file(
    "cosmos/upgrade/v1beta1/upgrade.proto",
    "cosmos.upgrade.v1beta1",
    [
        _message(
            "Plan",
            [
                ("name", 1, "string"),
                ("time", 2, TIMESTAMP),
                ("height", 3, "int64"),
                ("info", 4, "string"),
                ("upgraded_client_state", 5, ANY),
            ],
        ),
        _message(
            "MsgSoftwareUpgrade",
            [("authority", 1, "string"), ("plan", 2, ".cosmos.upgrade.v1beta1.Plan")],
        ),
        _message("MsgSoftwareUpgradeResponse"),
    ],
    deps=["google/protobuf/any.proto", "google/protobuf/timestamp.proto"],
)

_VOTE_OPTION = "enum:" + GOV + "VoteOption"


def _gov_page_query(name: str, key_fields: Sequence[FieldSpec], item: str, repeated: str) -> List[descriptor_pb2.DescriptorProto]:
    return [
        _message(f"Query{name}Request", [*key_fields, ("pagination", len(key_fields) + 1, PAGE_REQ)]),
        _message(f"Query{name}Response", [(repeated, 1, GOV + item, REPEATED), ("pagination", 2, PAGE_RESP)]),
    ]


_GOV_FILE = _file(
    "cosmos/gov/v1beta1/gov.proto",
    "cosmos.gov.v1beta1",
    [
        _message("WeightedVoteOption", [("option", 1, _VOTE_OPTION), ("weight", 2, "string")]),
        _message("TextProposal", [("title", 1, "string"), ("description", 2, "string")]),
        _message(
            "Deposit",
            [("proposal_id", 1, "uint64"), ("depositor", 2, "string"), ("amount", 3, COIN, REPEATED)],
        ),
        _message(
            "TallyResult",
            [("yes", 1, "string"), ("abstain", 2, "string"), ("no", 3, "string"), ("no_with_veto", 4, "string")],
        ),
        _message(
            "Proposal",
            [
                ("proposal_id", 1, "uint64"),
                ("content", 2, ANY),
                ("status", 3, "enum:" + GOV + "ProposalStatus"),
                ("final_tally_result", 4, GOV + "TallyResult"),
                ("submit_time", 5, TIMESTAMP),
                ("deposit_end_time", 6, TIMESTAMP),
                ("total_deposit", 7, COIN, REPEATED),
                ("voting_start_time", 8, TIMESTAMP),
                ("voting_end_time", 9, TIMESTAMP),
            ],
        ),
        _message(
            "Vote",
            [
                ("proposal_id", 1, "uint64"),
                ("voter", 2, "string"),
                ("option", 3, _VOTE_OPTION),
                ("options", 4, GOV + "WeightedVoteOption", REPEATED),
            ],
        ),
        _message("DepositParams", [("min_deposit", 1, COIN, REPEATED), ("max_deposit_period", 2, DURATION)]),
        _message("VotingParams", [("voting_period", 1, DURATION)]),
        _message("TallyParams", [("quorum", 1, "bytes"), ("threshold", 2, "bytes"), ("veto_threshold", 3, "bytes")]),
        # queries
        _message("QueryProposalRequest", [("proposal_id", 1, "uint64")]),
        _message("QueryProposalResponse", [("proposal", 1, GOV + "Proposal")]),
        _message(
            "QueryProposalsRequest",
            [
                ("proposal_status", 1, "enum:" + GOV + "ProposalStatus"),
                ("voter", 2, "string"),
                ("depositor", 3, "string"),
                ("pagination", 4, PAGE_REQ),
            ],
        ),
        _message(
            "QueryProposalsResponse",
            [("proposals", 1, GOV + "Proposal", REPEATED), ("pagination", 2, PAGE_RESP)],
        ),
        _message("QueryVoteRequest", [("proposal_id", 1, "uint64"), ("voter", 2, "string")]),
        _message("QueryVoteResponse", [("vote", 1, GOV + "Vote")]),
        *_gov_page_query("Votes", [("proposal_id", 1, "uint64")], "Vote", "votes"),
        _message("QueryParamsRequest", [("params_type", 1, "string")]),
        _message(
            "QueryParamsResponse",
            [
                ("voting_params", 1, GOV + "VotingParams"),
                ("deposit_params", 2, GOV + "DepositParams"),
                ("tally_params", 3, GOV + "TallyParams"),
            ],
        ),
        _message("QueryDepositRequest", [("proposal_id", 1, "uint64"), ("depositor", 2, "string")]),
        _message("QueryDepositResponse", [("deposit", 1, GOV + "Deposit")]),
        *_gov_page_query("Deposits", [("proposal_id", 1, "uint64")], "Deposit", "deposits"),
        _message("QueryTallyResultRequest", [("proposal_id", 1, "uint64")]),
        _message("QueryTallyResultResponse", [("tally", 1, GOV + "TallyResult")]),
        # messages
        _message(
            "MsgSubmitProposal",
            [("content", 1, ANY), ("initial_deposit", 2, COIN, REPEATED), ("proposer", 3, "string")],
        ),
        _message("MsgSubmitProposalResponse", [("proposal_id", 1, "uint64")]),
        _message(
            "MsgVote",
            [("proposal_id", 1, "uint64"), ("voter", 2, "string"), ("option", 3, _VOTE_OPTION)],
        ),
        _message("MsgVoteResponse"),
        _message(
            "MsgVoteWeighted",
            [
                ("proposal_id", 1, "uint64"),
                ("voter", 2, "string"),
                ("options", 3, GOV + "WeightedVoteOption", REPEATED),
            ],
        ),
        _message("MsgVoteWeightedResponse"),
        _message(
            "MsgDeposit",
            [("proposal_id", 1, "uint64"), ("depositor", 2, "string"), ("amount", 3, COIN, REPEATED)],
        ),
        _message("MsgDepositResponse"),
    ],
    enums=[
        _enum(
            "VoteOption",
            [
                "VOTE_OPTION_UNSPECIFIED",
                "VOTE_OPTION_YES",
                "VOTE_OPTION_ABSTAIN",
                "VOTE_OPTION_NO",
                "VOTE_OPTION_NO_WITH_VETO",
            ],
        ),
        _enum(
            "ProposalStatus",
            [
                "PROPOSAL_STATUS_UNSPECIFIED",
                "PROPOSAL_STATUS_DEPOSIT_PERIOD",
                "PROPOSAL_STATUS_VOTING_PERIOD",
                "PROPOSAL_STATUS_PASSED",
                "PROPOSAL_STATUS_REJECTED",
                "PROPOSAL_STATUS_FAILED",
            ],
        ),
    ],
    deps=[
        "google/protobuf/any.proto",
        "google/protobuf/timestamp.proto",
        "google/protobuf/duration.proto",
        "cosmos/base/v1beta1/coin.proto",
        "cosmos/base/query/v1beta1/pagination.proto",
    ],
)


_GEVULOT = _file(
    "gevulot/gevulot/gevulot.proto",
    "gevulot.gevulot",
    _entities() + _queries() + _msgs(),
    deps=["cosmos/base/query/v1beta1/pagination.proto"],
)

FILES: Tuple[descriptor_pb2.FileDescriptorProto, ...] = (
    _COIN,
    _PAGINATION,
    _SECP256K1,
    _SIGNING,
    _TENDERMINT_ABCI,
    _ABCI,
    _TX,
    _AUTH,
    _BANK,
    _GEVULOT,
    _UPGRADE,
    _GOV_FILE,
)


def build_pool(files: Optional[Iterable[descriptor_pb2.FileDescriptorProto]] = None) -> descriptor_pool.DescriptorPool:
    """Create a fresh pool holding the well-known types plus ``files`` (dependency order)."""
    pool = descriptor_pool.DescriptorPool()
    for wkt in (any_pb2, timestamp_pb2, duration_pb2):
        pool.AddSerializedFile(wkt.DESCRIPTOR.serialized_pb)
    for fd in FILES if files is None else files:
        pool.AddSerializedFile(fd.SerializeToString())
    return pool


__all__ = ["FILES", "build_pool"]
