"""Response handling: read gates and body decoders."""

from .decoder import BodyDecoder, DecoderType, DecodeSource, JsonDecoder, decoder_for
from .gate import ResponseGate, always_read, skip_on_client_or_server_error

__all__ = [
    # Gates
    "ResponseGate",
    "always_read",
    "skip_on_client_or_server_error",
    # Decoders
    "BodyDecoder",
    "DecodeSource",
    "DecoderType",
    "JsonDecoder",
    "decoder_for",
]
