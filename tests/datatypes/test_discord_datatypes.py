import pytest

from bulwark.datatypes.discord_datatypes import ChannelID, GuildID, RoleID, Snowflake, UserID


class DummyObj:
    def __init__(self, id_val=None):
        self.id = id_val


def test_userid_from_int_and_str_and_equality_and_hash():
    u1 = UserID(12345)
    assert u1.to_int() == 12345
    assert str(u1) == "12345"

    u2 = UserID("12345")
    assert u1 == u2

    u3 = UserID.from_int(67890)
    assert isinstance(u3, UserID)
    assert u3.to_int() == 67890

    u4 = UserID(DummyObj(id_val=111))
    assert u4.to_int() == 111

    s = {u1, u2, u3, u4}
    assert len(s) == 3


def test_wrappers_of_different_kinds_never_collide():
    assert GuildID(1) != UserID(1)
    assert len({GuildID(1), UserID(1), ChannelID(1), RoleID(1)}) == 4


def test_wrapping_a_wrapper_keeps_the_value():
    assert ChannelID(ChannelID("42")).to_int() == 42
    assert repr(GuildID(7)) == "GuildID(7)"


@pytest.mark.parametrize("value", [[], None, True, -1, "abc"])
def test_invalid_values(value):
    with pytest.raises(ValueError):
        Snowflake(value)
