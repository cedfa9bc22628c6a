import io

import pytest

from meowdrop import codec
from meowdrop.errors import CodecError, FileTooLargeError, PayloadReadError


@pytest.mark.parametrize(
    "data",
    [b"", b"hello meow", bytes(range(256)), b"\x00\xff" * 1000],
)
def test_round_trip(data):
    assert codec.decode(codec.encode(data)) == data


def test_encode_is_data_uri():
    assert codec.encode(b"hi", "text/plain") == "data:text/plain;base64,aGk="
    assert codec.encode(b"").startswith("data:application/octet-stream;base64,")


def test_mime_of():
    assert codec.mime_of(codec.encode(b"x", "application/pdf")) == "application/pdf"
    assert codec.mime_of("aGk=") == codec.DEFAULT_MIME


def test_decode_accepts_bare_base64():
    assert codec.decode("aGk=") == b"hi"


@pytest.mark.parametrize("text", ["data:text/plain,hi", "data:;base64,!!!", "not base64 at all"])
def test_decode_rejects_garbage(text):
    with pytest.raises(CodecError):
        codec.decode(text)


def test_read_payload_reads_everything():
    data = b"m" * (codec.CHUNK_SIZE + 10)
    assert codec.read_payload(io.BytesIO(data)) == data


def test_read_payload_limit():
    with pytest.raises(FileTooLargeError):
        codec.read_payload(io.BytesIO(b"12345"), limit=4)


class BrokenStream:
    def __init__(self):
        self.calls = 0

    def read(self, size=-1):
        self.calls += 1
        if self.calls > 1:
            raise OSError("read interrupted")
        return b"partial"


def test_read_payload_io_error():
    with pytest.raises(PayloadReadError):
        codec.read_payload(BrokenStream())
