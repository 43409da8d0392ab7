import json

import httpx
import pytest

from mutumwa.exceptions import TransportError
from mutumwa.stream.assembler import StreamingReplyAssembler
from mutumwa.types.update import Created
from mutumwa.types.update import Finalized
from mutumwa.types.update import Updated


async def collect(stream):
    return [update async for update in stream]


@pytest.mark.asyncio
async def test_lines_split_across_chunks(make_source):
    source = make_source(
        '{"type":"item","content":"Hello, "}\n{"type":"item","con',
        'tent":"world"}\n',
        '{"type":"item","content":"!"}',
    )
    updates = await collect(StreamingReplyAssembler().assemble(source, message_id="m1"))
    assert updates == [
        Created(id="m1"),
        Updated(id="m1", text="Hello, "),
        Updated(id="m1", text="Hello, world"),
        Updated(id="m1", text="Hello, world!"),
        Finalized(id="m1"),
    ]
    assert source.closed


@pytest.mark.asyncio
async def test_multibyte_character_split_between_chunks(make_source, item_line):
    data = (item_line("Mari € 20") + item_line(" ✓")).encode("utf-8")
    cut = data.index("€".encode("utf-8")) + 1
    source = make_source(data[:cut], data[cut:cut + 1], data[cut + 1:])
    updates = await collect(StreamingReplyAssembler().assemble(source))
    assert updates[-2].text == "Mari € 20 ✓"


@pytest.mark.asyncio
async def test_noise_produces_no_updates(make_source):
    source = make_source(
        '{"type":"begin","metadata":{}}\n',
        "\n   \n",
        "garbage\n",
        '{"type":"item","content":""}\n',
        '{"type":"end"}\n',
    )
    assembler = StreamingReplyAssembler()
    assert await collect(assembler.assemble(source)) == []
    assert source.closed


@pytest.mark.asyncio
async def test_noise_between_items_does_not_change_text(make_source, item_line):
    source = make_source(item_line("a"), "not json\n", '{"type":"ping"}\n', item_line("b"))
    updates = await collect(StreamingReplyAssembler().assemble(source, message_id="m1"))
    assert [u for u in updates if isinstance(u, Updated)] == [
        Updated(id="m1", text="a"),
        Updated(id="m1", text="ab"),
    ]


@pytest.mark.asyncio
async def test_final_output_replaces_streamed_text(make_source, item_line):
    final = json.dumps({"output": "Full answer."})
    source = make_source(item_line("Full "), item_line("ans"), item_line(final))
    updates = await collect(StreamingReplyAssembler().assemble(source))
    assert updates[-2].text == "Full answer."
    assert isinstance(updates[-1], Finalized)


@pytest.mark.asyncio
async def test_crlf_lines(make_source):
    source = make_source('{"type":"item","content":"a"}\r\n{"type":"item","content":"b"}\r\n')
    updates = await collect(StreamingReplyAssembler().assemble(source))
    assert updates[-2].text == "ab"


@pytest.mark.asyncio
async def test_transport_failure_raises_and_releases(make_source, item_line):
    source = make_source(item_line("partial"), error=httpx.ReadError("connection reset"))
    stream = StreamingReplyAssembler().assemble(source, message_id="m1")
    seen = []
    with pytest.raises(TransportError) as exc_info:
        async for update in stream:
            seen.append(update)
    assert isinstance(exc_info.value.__cause__, httpx.ReadError)
    assert seen == [Created(id="m1"), Updated(id="m1", text="partial")]
    assert source.closed
    assert isinstance(stream.error, TransportError)


@pytest.mark.asyncio
async def test_abandoned_stream_releases_source(make_source, item_line):
    source = make_source(item_line("one"), item_line("two"), item_line("three"))
    stream = StreamingReplyAssembler().assemble(source)
    async with stream:
        async for update in stream:
            if isinstance(update, Updated):
                break
    assert source.closed
    assert source.reads == 1


@pytest.mark.asyncio
async def test_unstarted_stream_releases_source_on_close(make_source, item_line):
    source = make_source(item_line("never read"))
    stream = StreamingReplyAssembler().assemble(source)
    await stream.aclose()
    assert source.closed
    assert source.reads == 0


@pytest.mark.asyncio
async def test_reads_one_chunk_per_update_step(make_source, item_line):
    source = make_source(item_line("a"), item_line("b"), item_line("c"))
    stream = StreamingReplyAssembler().assemble(source)
    async with stream:
        reads = []
        async for update in stream:
            reads.append(source.reads)
    assert reads == [1, 1, 2, 3, 3]


@pytest.mark.asyncio
async def test_run_calls_sync_and_async_callbacks(make_source, item_line):
    seen = []

    async def on_update(update):
        seen.append(update)

    message = await StreamingReplyAssembler().run(
        make_source(item_line("Hi"), item_line(" there")), on_update, message_id="m1")
    assert message.text == "Hi there"
    assert message.is_final
    assert seen[0] == Created(id="m1")
    assert seen[-1] == Finalized(id="m1")

    sync_seen = []
    message = await StreamingReplyAssembler().run(make_source(item_line("x")), sync_seen.append)
    assert message.text == "x"
    assert len(sync_seen) == 3


@pytest.mark.asyncio
async def test_run_without_content_returns_none(make_source):
    seen = []
    message = await StreamingReplyAssembler().run(make_source('{"type":"end"}\n'), seen.append)
    assert message is None
    assert seen == []


@pytest.mark.asyncio
async def test_independent_streams_do_not_share_state(make_source, item_line):
    assembler = StreamingReplyAssembler()
    first = aiter(assembler.assemble(
        make_source('{"type":"item","content":"fir', 'st"}\n'), message_id="a"))
    second = assembler.assemble(make_source(item_line("second")), message_id="b")

    assert await anext(first) == Created(id="a")
    assert await collect(second) == [
        Created(id="b"),
        Updated(id="b", text="second"),
        Finalized(id="b"),
    ]
    assert [update async for update in first] == [
        Updated(id="a", text="first"),
        Finalized(id="a"),
    ]


def test_unknown_encoding_is_rejected():
    with pytest.raises(LookupError):
        StreamingReplyAssembler(encoding="no-such-codec")


@pytest.mark.asyncio
async def test_run_with_single_item_and_list_callback(make_source, item_line):
    seen = []
    message = await StreamingReplyAssembler().run(make_source(item_line("Hi")), seen.append,
                                                  message_id="m1")
    assert message.text == "Hi"
    assert seen == [Created(id="m1"), Updated(id="m1", text="Hi"), Finalized(id="m1")]


@pytest.mark.asyncio
async def test_closed_response_stream_raises_transport_error(make_source, item_line):
    source = make_source(item_line("partial"), error=httpx.StreamClosed())
    stream = StreamingReplyAssembler().assemble(source)
    with pytest.raises(TransportError) as exc_info:
        async for _ in stream:
            pass
    assert isinstance(exc_info.value.__cause__, httpx.StreamClosed)
    assert source.closed


@pytest.mark.asyncio
async def test_invalid_utf8_is_replaced_without_aborting(make_source, item_line):
    source = make_source(b'{"type":"item","content":"ab', b"\xff", b'cd"}\n', item_line("!"))
    updates = await collect(StreamingReplyAssembler().assemble(source, message_id="m1"))
    assert updates == [
        Created(id="m1"),
        Updated(id="m1", text="ab\ufffdcd"),
        Updated(id="m1", text="ab\ufffdcd!"),
        Finalized(id="m1"),
    ]
