from roomchat.tcp_chat.framing import LineBuffer, encode_msg


def test_encode_is_one_line():
    raw = encode_msg({"type": "MESSAGE", "text": "a\nb"})
    assert raw.endswith(b"\n")
    assert raw.count(b"\n") == 1


def test_many_lines_in_one_read():
    buf = LineBuffer()
    assert buf.feed(b'{"a":1}\n{"b":2}\n{"c"') == [b'{"a":1}', b'{"b":2}']
    assert buf.pending == 4


def test_line_split_across_reads():
    buf = LineBuffer()
    assert buf.feed(b'{"type":"MES') == []
    assert buf.feed(b'SAGE","text":"hi"}') == []
    assert buf.feed(b"\n") == [b'{"type":"MESSAGE","text":"hi"}']
    assert buf.pending == 0


def test_oversized_line_is_reported_once_and_skipped():
    buf = LineBuffer(max_line_bytes=8)
    assert buf.feed(b"0123456789") == [None]
    # still inside the oversized line
    assert buf.feed(b"abcdefghijkl") == []
    assert buf.feed(b'xyz\n{"ok":1}\n') == [b'{"ok":1}']


def test_oversized_complete_line_keeps_neighbours():
    buf = LineBuffer(max_line_bytes=8)
    assert buf.feed(b"short\n" + b"x" * 20 + b"\nafter\n") == [b"short", None, b"after"]
