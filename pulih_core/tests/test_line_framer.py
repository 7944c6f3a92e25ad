from pulih_core.streaming.framer import LineFramer


def test_framer_withholds_partial_line():
    framer = LineFramer()
    assert framer.feed(b"data: a\ndata: b") == ["data: a"]
    assert framer.pending == b"data: b"
    assert framer.feed(b"c\n") == ["data: bc"]
    assert framer.flush() == ""


def test_framer_zero_length_chunk_keeps_pending():
    framer = LineFramer()
    framer.feed(b"data: x")
    assert framer.feed(b"") == []
    assert framer.pending == b"data: x"
    assert framer.flush() == "data: x"


def test_framer_empty_lines_and_crlf():
    framer = LineFramer()
    assert framer.feed(b"one\r\n\r\ntwo\n") == ["one", "", "two"]


def test_framer_multibyte_char_split_across_chunks():
    raw = "data: kamu 🌸\n".encode("utf-8")
    cut = raw.index("🌸".encode("utf-8")) + 2
    framer = LineFramer()
    assert framer.feed(raw[:cut]) == []
    assert framer.feed(raw[cut:]) == ["data: kamu 🌸"]


def test_framer_accepts_text_chunks():
    framer = LineFramer()
    assert framer.feed("a\nb") == ["a"]
    assert framer.flush() == "b"
    assert framer.flush() == ""
