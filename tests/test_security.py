import pytest

from app.security import key_matches


def test_key_matches_exact_secret():
    assert key_matches("topsecret", "topsecret")


@pytest.mark.parametrize(
    "presented,expected",
    [
        ("topsecret", "TOPSECRET"),
        ("topsecre", "topsecret"),
        (None, "topsecret"),
        ("", "topsecret"),
        ("", ""),
        ("anything", None),
    ],
)
def test_key_mismatch_or_unset_secret(presented, expected):
    assert not key_matches(presented, expected)
