"""
Testing the client context and settings.
"""

import pytest

from wordduel.config import Settings
from wordduel.context import DuelContext
from wordduel.room_store import InMemoryRoomStore


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("WORDDUEL_POLL_INTERVAL", "0.25")
    monkeypatch.setenv("WORDDUEL_HARD_MODE", "yes")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.delenv("WORDDUEL_WORDLIST_URL", raising=False)

    settings = Settings.from_env()
    assert settings.poll_interval == 0.25
    assert settings.hard_mode is True
    assert settings.log_level == "DEBUG"
    assert settings.word_list_url is None


def test_poll_interval_must_be_positive(monkeypatch):
    monkeypatch.setenv("WORDDUEL_POLL_INTERVAL", "0")
    with pytest.raises(ValueError):
        Settings.from_env()


def test_context_closes_its_matches(words):
    store = InMemoryRoomStore()
    settings = Settings(poll_interval=0.01, hard_mode=True)

    with DuelContext(store, words, settings) as ctx:
        user = ctx.login("alice")
        match = ctx.new_match()
        assert match.user == user
        assert match.session.hard_mode
        room = match.create_room()

    assert ctx.closed
    assert store.get_room(room.id).status == "finished"
    with pytest.raises(RuntimeError):
        ctx.new_match()


def test_login_after_new_match_updates_it(words):
    ctx = DuelContext(InMemoryRoomStore(), words, Settings(poll_interval=0.01))
    match = ctx.new_match(hard_mode=False)
    assert match.user is None
    user = ctx.login("bob")
    assert match.user == user
    ctx.close()
    ctx.close()


def test_context_has_a_solo_store(words):
    ctx = DuelContext(InMemoryRoomStore(), words, Settings())
    game = ctx.solo.create("crane")
    assert ctx.solo.guess(game.id, "crane").won
    assert ctx.solo.get_stats().games_won == 1
    ctx.close()


def test_open_defaults_to_in_memory(monkeypatch):
    settings = Settings(word_list_url=None)
    ctx = DuelContext.open(settings)
    assert isinstance(ctx.store, InMemoryRoomStore)
    assert ctx.dictionary.is_valid_word("crane")
    ctx.close()
