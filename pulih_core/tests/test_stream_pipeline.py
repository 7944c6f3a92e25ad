import json

from pulih_core.streaming.pipeline import StreamPipeline


def _event(text):
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": text}}]}, ensure_ascii=False) + "\n"


FULL_STREAM = (
    ": keep-alive\n"
    + _event("Hai")
    + "\n"
    + _event(" apa ")
    + "data: {not json\n"
    + _event("")
    + _event("kabar 🌸")
    + "data: [DONE]\n"
).encode("utf-8")


def _run(chunks):
    snapshots = []
    outcome = StreamPipeline().consume(chunks, on_snapshot=snapshots.append)
    return outcome, snapshots


def test_pipeline_single_chunk():
    outcome, snapshots = _run([FULL_STREAM])
    assert outcome.text == "Hai apa kabar 🌸"
    assert outcome.terminated
    assert snapshots == ["Hai", "Hai apa ", "Hai apa kabar 🌸"]


def test_pipeline_result_independent_of_split_point():
    expected, _ = _run([FULL_STREAM])
    for i in range(len(FULL_STREAM) + 1):
        outcome, snapshots = _run([FULL_STREAM[:i], FULL_STREAM[i:]])
        assert outcome.text == expected.text, f"split at {i}"
        assert snapshots[-1] == expected.text


def test_pipeline_result_independent_of_byte_by_byte_delivery():
    chunks = [FULL_STREAM[i:i + 1] for i in range(len(FULL_STREAM))]
    outcome, snapshots = _run(chunks)
    assert outcome.text == "Hai apa kabar 🌸"
    assert snapshots == ["Hai", "Hai apa ", "Hai apa kabar 🌸"]


def test_pipeline_flushes_trailing_line_without_newline():
    outcome, _ = _run([_event("a").encode(), _event("b").rstrip("\n").encode()])
    assert outcome.text == "ab"
    assert not outcome.terminated


def test_pipeline_stops_reading_after_terminal():
    closed = []

    def chunks():
        try:
            yield (_event("a") + "data: [DONE]\n" + _event("ignored")).encode()
            raise AssertionError("must not read past the terminal marker")
        finally:
            closed.append(True)

    outcome, _ = _run(chunks())
    assert outcome.text == "a"
    assert outcome.terminated
    assert closed == [True]


def test_pipeline_abandons_when_asked_to_stop():
    stop = []

    def chunks():
        yield _event("a").encode()
        stop.append(True)
        yield _event("b").encode()

    outcome = StreamPipeline().consume(chunks(), should_stop=lambda: bool(stop))
    assert outcome.abandoned
    assert outcome.text == "a"


def test_pipeline_keeps_partial_text_when_transport_breaks():
    def chunks():
        yield _event("Sebagian").encode()
        raise ConnectionError("reset")

    pipeline = StreamPipeline()
    try:
        pipeline.consume(chunks())
    except ConnectionError:
        pass
    assert pipeline.text == "Sebagian"


def test_pipeline_stopped_before_first_read_never_pulls_chunks():
    class Chunks:
        def __init__(self):
            self.pulled = 0
            self.closed = False

        def __iter__(self):
            return self

        def __next__(self):
            self.pulled += 1
            return _event("a").encode()

        def close(self):
            self.closed = True

    chunks = Chunks()
    outcome = StreamPipeline().consume(chunks, should_stop=lambda: True)

    assert outcome.abandoned
    assert outcome.text == ""
    assert chunks.pulled == 0
    assert chunks.closed
