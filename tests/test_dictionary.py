"""
Testing the word dictionary and its fallback
- Remote download is faked with monkeypatch; no network in tests.
"""

import pytest
import requests

from wordduel import dictionary
from wordduel.dictionary import FALLBACK_WORDS, WordList, load_word_list


class _FakeResponse:
    def __init__(self, text: str, status_code: int = 200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def test_word_list_is_case_insensitive_and_closed():
    words = WordList(["Crane", "trace"])
    assert words.is_valid_word("CRANE")
    assert words.is_valid_word(" trace ")
    assert not words.is_valid_word("xxxxx")


def test_solutions_are_always_valid():
    words = WordList(["crane"], solutions=["trace"])
    assert words.is_valid_word("trace")
    for _ in range(10):
        assert words.random_word() == "trace"


def test_word_list_needs_a_solution():
    with pytest.raises(ValueError):
        WordList([])


def test_fallback_words_are_five_letters():
    assert FALLBACK_WORDS
    assert all(len(w) == 5 and w.isalpha() for w in FALLBACK_WORDS)


def test_load_without_url_uses_bundled_words():
    words = load_word_list(None)
    assert len(words) == len(set(FALLBACK_WORDS))


def test_load_remote_words(monkeypatch):
    def fake_get(url, timeout):
        return _FakeResponse("crane\nTRACE\nnope\n\nslate\n")

    monkeypatch.setattr(dictionary.requests, "get", fake_get)
    words = load_word_list("http://words.example/list.txt")
    assert words.is_valid_word("trace")
    assert not words.is_valid_word("nope")
    assert len(words) == 3


def test_load_falls_back_on_network_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("no internet")

    monkeypatch.setattr(dictionary.requests, "get", fake_get)
    words = load_word_list("http://words.example/list.txt")
    assert words.is_valid_word(FALLBACK_WORDS[0])


def test_load_falls_back_on_bad_status_or_empty_body(monkeypatch):
    monkeypatch.setattr(dictionary.requests, "get", lambda url, timeout: _FakeResponse("", 500))
    assert len(load_word_list("http://x")) == len(set(FALLBACK_WORDS))

    monkeypatch.setattr(dictionary.requests, "get", lambda url, timeout: _FakeResponse("too long\n"))
    assert len(load_word_list("http://x")) == len(set(FALLBACK_WORDS))
