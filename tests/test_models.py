import pytest
from pydantic import ValidationError

from app.models import Message


def test_message_json_roundtrip():
    m = Message(message="héllo", author="a")
    assert Message.model_validate_json(m.model_dump_json()) == m


@pytest.mark.parametrize(
    "raw",
    [
        b'{"message": "hi"}',
        b'{"author": "a"}',
        b'{"message": 1, "author": "a"}',
        b'{"message": "hi", "author": null}',
        b"not json",
    ],
)
def test_message_rejects_malformed_payloads(raw):
    with pytest.raises(ValidationError):
        Message.model_validate_json(raw)


def test_message_is_immutable():
    m = Message(message="hi", author="a")
    with pytest.raises(ValidationError):
        m.message = "changed"  # type: ignore[misc]
