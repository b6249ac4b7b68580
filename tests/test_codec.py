"""
Session codec (sessions/codec.py)

Tests payload storage, payload owners and corruption tolerance.
"""

import pytest

from samlsession.sessions import (
    SESSION_KEY,
    ChannelNotActiveFault,
    CorruptPayloadFault,
    JsonPayloadOwner,
    MemoryChannel,
    PicklePayloadOwner,
    SessionCodec,
)


class Assertion:
    """Stand-in for an opaque protocol object."""

    def __init__(self, subject, attributes):
        self.subject = subject
        self.attributes = attributes

    def __eq__(self, other):
        return isinstance(other, Assertion) and vars(self) == vars(other)


@pytest.fixture
def active_channel():
    channel = MemoryChannel()
    channel.set_id("codec1")
    channel.start()
    return channel


# ============================================================================
# Round trip
# ============================================================================

class TestRoundTrip:

    @pytest.mark.parametrize("payload", [
        {"user": "alice", "attrs": {"mail": ["a@example.org"]}},
        ["x", 1, None, True],
        "plain string",
    ])
    def test_json(self, active_channel, payload):
        codec = SessionCodec(active_channel, JsonPayloadOwner())
        codec.save(payload)
        assert codec.load() == payload

    def test_pickle_object(self, active_channel):
        codec = SessionCodec(active_channel, PicklePayloadOwner())
        payload = Assertion("alice", {"eduPersonAffiliation": ["member"]})
        codec.save(payload)
        assert isinstance(active_channel.bag[SESSION_KEY], str)
        assert codec.load() == payload

    def test_survives_write_close(self, active_channel):
        codec = SessionCodec(active_channel, JsonPayloadOwner())
        codec.save({"n": 1})
        active_channel.write_close()
        active_channel.start()
        assert codec.load() == {"n": 1}


# ============================================================================
# Absent & corrupt
# ============================================================================

class TestCorruption:

    def test_absent_key(self, active_channel):
        assert SessionCodec(active_channel, JsonPayloadOwner()).load() is None

    def test_inactive_channel_loads_nothing(self):
        assert SessionCodec(MemoryChannel(), JsonPayloadOwner()).load() is None

    def test_save_requires_active_channel(self):
        with pytest.raises(ChannelNotActiveFault):
            SessionCodec(MemoryChannel(), JsonPayloadOwner()).save({})

    @pytest.mark.parametrize("garbage", [
        "{truncated",
        b"\x80\x04\x95",
        42,
        "%%%not-base64%%%",
        "[" * 200000,
    ])
    @pytest.mark.parametrize("owner_cls", [JsonPayloadOwner, PicklePayloadOwner])
    def test_garbage_reads_as_no_session(self, active_channel, owner_cls, garbage):
        active_channel.bag[SESSION_KEY] = garbage
        assert SessionCodec(active_channel, owner_cls()).load() is None

    @pytest.mark.parametrize("blob", [
        "gASNamNRVFJLPeI=",  # oversized long
        "gASWmL4neh4ChyY=",  # absurd bytearray length
    ])
    def test_forged_pickle_stream(self, active_channel, blob):
        active_channel.bag[SESSION_KEY] = blob
        assert SessionCodec(active_channel, PicklePayloadOwner()).load() is None

    def test_deep_nesting_wrapped(self):
        with pytest.raises(CorruptPayloadFault):
            JsonPayloadOwner().deserialize("[" * 200000)

    @pytest.mark.parametrize("error", [RecursionError, OverflowError, MemoryError])
    def test_any_owner_error_is_contained(self, active_channel, error):
        class FragileOwner(JsonPayloadOwner):
            def deserialize(self, data):
                raise error("decoder gave up")

        codec = SessionCodec(active_channel, FragileOwner())
        codec.save({"v": 1})
        assert codec.load() is None

    def test_unwrapped_owner_errors_are_contained(self, active_channel):
        class StrictOwner(JsonPayloadOwner):
            def deserialize(self, data):
                raise ValueError("incompatible format version")

        codec = SessionCodec(active_channel, StrictOwner())
        codec.save({"v": 2})
        assert codec.load() is None

    def test_owner_raises_corrupt_fault(self):
        with pytest.raises(CorruptPayloadFault) as exc:
            JsonPayloadOwner().deserialize("{")
        assert exc.value.code == "SESSION_PAYLOAD_CORRUPT"


# ============================================================================
# Owner notifications
# ============================================================================

class TestOwner:

    def test_session_created_recorded(self):
        owner = JsonPayloadOwner()
        owner.session_created("abc")
        assert owner.created == ["abc"]
