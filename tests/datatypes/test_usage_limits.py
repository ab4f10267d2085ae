import pytest

from bulwark.datatypes import usage_limits
from bulwark.datatypes.megalog import MEGALOG_FUNCTIONS, resolve_megalog_functions
from bulwark.datatypes.usage_limits import CommandUsageLimits


class TestCommandUsageLimits:
    def test_from_dict_ignores_malformed_values(self):
        limits = CommandUsageLimits.from_dict({"global_cooldown": "5", "local_cooldown": 10.0, "enabled": 1})
        assert limits == CommandUsageLimits(global_cooldown=None, local_cooldown=10, enabled=None)

    def test_unknown_keys_are_logged_not_applied(self, monkeypatch):
        warnings = []

        def fake_warning(*args, **kwargs):
            warnings.append(args)

        monkeypatch.setattr(usage_limits.logger, "warning", fake_warning)

        settings = {"commands": {"ping": {"globalCooldown": 5000, "local_cooldown": 1000}}}
        limits = CommandUsageLimits.from_settings(settings, "ping")

        assert limits == CommandUsageLimits(local_cooldown=1000)
        assert len(warnings) == 1
        assert "globalCooldown" in warnings[0][1]

    def test_known_keys_do_not_warn(self, monkeypatch):
        warnings = []
        monkeypatch.setattr(usage_limits.logger, "warning", lambda *args, **kwargs: warnings.append(args))

        limits = CommandUsageLimits.from_dict({"global_cooldown": 5000, "local_cooldown": 1000, "enabled": True})

        assert limits == CommandUsageLimits(global_cooldown=5000, local_cooldown=1000, enabled=True)
        assert warnings == []

    def test_from_settings_picks_the_command_entry(self):
        settings = {"commands": {"ping": {"local_cooldown": 1000, "enabled": False}}}
        assert CommandUsageLimits.from_settings(settings, "ping") == CommandUsageLimits(local_cooldown=1000, enabled=False)
        assert CommandUsageLimits.from_settings(settings, "help") == CommandUsageLimits()
        assert CommandUsageLimits.from_settings(None, "ping") == CommandUsageLimits()

    def test_merge_inherits_only_absent_fields(self):
        top = CommandUsageLimits(local_cooldown=0, enabled=True)
        base = CommandUsageLimits(global_cooldown=20_000, local_cooldown=5_000, enabled=False)
        assert top.merged_over(base) == CommandUsageLimits(global_cooldown=20_000, local_cooldown=0, enabled=True)

    def test_has_cooldown_and_to_dict(self):
        assert not CommandUsageLimits().has_cooldown
        assert not CommandUsageLimits(local_cooldown=0).has_cooldown
        assert CommandUsageLimits(global_cooldown=1).has_cooldown
        assert CommandUsageLimits(local_cooldown=5, enabled=False).to_dict() == {"local_cooldown": 5, "enabled": False}


class TestMegalogFunctions:
    def test_groups_expand_without_duplicates(self):
        assert resolve_megalog_functions(["channels", "channelCreate"]) == [
            "channelCreate",
            "channelDelete",
            "channelUpdate",
        ]
        assert resolve_megalog_functions("all") == list(MEGALOG_FUNCTIONS)

    def test_names_are_case_insensitive(self):
        assert resolve_megalog_functions("MESSAGEDELETE") == ["messageDelete"]

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError):
            resolve_megalog_functions("explosions")
