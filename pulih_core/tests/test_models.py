import dataclasses

import pytest

from pulih_core.domain.models import IGNORABLE, TERMINAL, ExchangeResult, Message, StreamEvent


def test_message_is_immutable():
    m = Message(role="user", content="hi")
    with pytest.raises(dataclasses.FrozenInstanceError):
        m.content = "changed"
    assert m.to_payload() == {"role": "user", "content": "hi"}
    assert Message.from_payload({"role": "assistant", "content": None}) == Message(role="assistant", content="")


def test_message_rejects_unknown_role():
    with pytest.raises(ValueError):
        Message(role="tool", content="x")


def test_stream_event_variants():
    assert StreamEvent.delta("a").is_delta
    assert TERMINAL.is_terminal
    assert not IGNORABLE.is_delta and not IGNORABLE.is_terminal


def test_exchange_result_committed_flag():
    assert ExchangeResult(state="committed").committed
    assert not ExchangeResult(state="failed").committed
