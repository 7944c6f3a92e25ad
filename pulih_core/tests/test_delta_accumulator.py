from pulih_core.domain.models import IGNORABLE, TERMINAL, StreamEvent
from pulih_core.streaming.accumulator import DeltaAccumulator


def test_accumulator_appends_in_order():
    acc = DeltaAccumulator()
    assert acc.apply(StreamEvent.delta("Hai")) == ("Hai", True)
    assert acc.apply(StreamEvent.delta(" apa kabar")) == ("Hai apa kabar", True)
    assert acc.text == "Hai apa kabar"


def test_accumulator_ignores_non_content_events():
    acc = DeltaAccumulator()
    acc.apply(StreamEvent.delta("a"))
    assert acc.apply(IGNORABLE) == ("a", False)
    assert acc.apply(StreamEvent.delta("")) == ("a", False)
    assert acc.delta_count == 2


def test_accumulator_rejects_deltas_after_terminal():
    acc = DeltaAccumulator()
    acc.apply(StreamEvent.delta("a"))
    assert acc.apply(TERMINAL) == ("a", False)
    assert acc.finished
    assert acc.apply(StreamEvent.delta("b")) == ("a", False)
    assert acc.text == "a"
