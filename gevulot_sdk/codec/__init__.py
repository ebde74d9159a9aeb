from .entities import (ENTITY_TYPES, coin_from_proto, decode, encode,
                       fill_proto, from_proto, proto_name, to_proto)
from .gov import (content_from_any, content_to_any, deposit_from_proto,
                  params_from_proto, proposal_from_proto, tally_from_proto,
                  vote_from_proto)
from .intents import (CREATES_ID, decode_response, intent_to_any,
                      intent_to_proto)

__all__ = [
    "ENTITY_TYPES",
    "coin_from_proto",
    "decode",
    "encode",
    "fill_proto",
    "from_proto",
    "proto_name",
    "to_proto",
    "content_from_any",
    "content_to_any",
    "deposit_from_proto",
    "params_from_proto",
    "proposal_from_proto",
    "tally_from_proto",
    "vote_from_proto",
    "CREATES_ID",
    "decode_response",
    "intent_to_any",
    "intent_to_proto",
]
