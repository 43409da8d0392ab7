from __future__ import annotations

from mutumwa.stream.assembler import StreamingReplyAssembler
from mutumwa.stream.classify import classify_line
from mutumwa.stream.classify import parse_record
from mutumwa.stream.framing import LineFramer
from mutumwa.stream.reducer import MessageReducer

__all__ = [
    "LineFramer",
    "MessageReducer",
    "StreamingReplyAssembler",
    "classify_line",
    "parse_record",
]
