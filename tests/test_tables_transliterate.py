from __future__ import annotations

import unicodedata

import pytest
import requests

from translit_pipeline.errors import RemoteTransliterationError, TableConflictError, TableLoadError
from translit_pipeline.models import TargetScript, TransliterationSource
from translit_pipeline.tables import (
    SubstitutionTable,
    TableBuilder,
    available_targets,
    build_table,
    compose_syllable,
    load_script_data,
)
from translit_pipeline.transliterate import AksharamukhaClient, TransliterationEngine


# -----------------------------
# Table / matcher
# -----------------------------
def test_longest_match_does_not_depend_on_insertion_order():
    forward = SubstitutionTable("s", "t", {"a": "1", "ab": "2", "abc": "3"})
    backward = SubstitutionTable("s", "t", {"abc": "3", "ab": "2", "a": "1"})
    for table in (forward, backward):
        assert table.apply("abcab") == "32"
        assert table.apply("abxa") == "2x1"
        assert table.match("zab", 1) == (2, "2")
        assert table.match("zab", 0) is None


def test_unmatched_characters_pass_through():
    table = SubstitutionTable("s", "t", {"a": "1"})
    assert table.apply("a-b a") == "1-b 1"


def test_builder_rejects_conflicting_duplicate_keys():
    builder = TableBuilder()
    builder.add("ka", "x")
    builder.add("ka", "x")
    with pytest.raises(TableConflictError) as excinfo:
        builder.add("ka", "y")
    assert excinfo.value.key == "ka"
    assert excinfo.value.stage == "table"


def test_build_table_reports_conflicts_in_reference_data():
    scripts = {
        "Src": {"consonants": ["a", "a"]},
        "Dst": {"consonants": ["x", "y"]},
    }
    with pytest.raises(TableConflictError):
        build_table("Src", "Dst", scripts)


def test_mismatched_category_lengths_are_rejected():
    scripts = {"Src": {"vowels": ["a", "b"]}, "Dst": {"vowels": ["x"]}}
    with pytest.raises(TableLoadError):
        build_table("Src", "Dst", scripts)


def test_missing_reference_file(tmp_path):
    with pytest.raises(TableLoadError):
        load_script_data(tmp_path / "nope.json")


def test_compose_syllable_places_marks():
    assert compose_syllable("க", "ா", "²", "்") == "கா²"
    assert compose_syllable("க", "்ரு", "²", "்") == "க்²ரு"
    assert compose_syllable("க", "்", "²", "்") == "க்²"
    assert compose_syllable("க", "ி", "", "்") == "கி"


def test_packaged_scripts_offer_both_targets():
    assert available_targets("Kannada") == ["Tamil", "TamilExtended"]


# -----------------------------
# Kannada -> Tamil
# -----------------------------
@pytest.fixture(scope="module")
def engine():
    return TransliterationEngine()


def test_single_tokens_map_individually(engine):
    result = engine.transliterate("ಕನ", TargetScript.TAMIL)
    assert result.text == "கந"
    assert result.source == TransliterationSource.LOCAL
    assert not result.degraded


def test_consonant_with_vowel_sign_is_matched_as_one_unit(engine):
    assert engine.transliterate("ಕಾ", "Tamil").text == "கா"
    assert engine.transliterate("ಕ್", "Tamil").text == "க்"
    assert engine.transliterate("ಕನ್ನಡ", "Tamil").text == "கந்நட"


def test_multi_character_symbol_wins_over_its_prefix(engine):
    assert engine.transliterate("ಓಂ", "Tamil").text == "ௐ"
    assert engine.transliterate("ಓ", "Tamil").text == "ஓ"


def test_numerals_and_punctuation(engine):
    assert engine.transliterate("೧೨೩, ಅ.", "Tamil").text == "௧௨௩, அ."


def test_target_script_text_passes_through_unchanged(engine):
    tamil = "தமிழ் நாடு ௧௨"
    result = engine.transliterate(tamil, "Tamil")
    assert result.text == tamil
    assert engine.transliterate(result.text, "Tamil").text == tamil


def test_extended_target_marks_aspirated_and_voiced_stops(engine):
    assert engine.transliterate("ಖಾ", TargetScript.TAMIL_EXTENDED).text == "கா²"
    assert engine.transliterate("ಗ", TargetScript.TAMIL_EXTENDED).text == "க³"
    assert engine.transliterate("ಘ್", TargetScript.TAMIL_EXTENDED).text == "க்⁴"
    assert engine.transliterate("ಕ", TargetScript.TAMIL_EXTENDED).text == "க"


@pytest.mark.parametrize(
    "kannada, tamil",
    [("ಕೊ", "கொ"), ("ಕೀ", "கீ"), ("ಕೈ", "கை"), ("ಕೋ", "கோ")],
)
def test_decomposed_vowel_signs_match_like_precomposed(engine, kannada, tamil):
    decomposed = unicodedata.normalize("NFD", kannada)
    assert decomposed != kannada
    result = engine.transliterate(decomposed, "Tamil")
    assert result.text == tamil
    assert result.source == TransliterationSource.LOCAL


def test_empty_text_is_local_and_empty(engine):
    result = engine.transliterate("  \n", "Tamil")
    assert result.text == ""
    assert result.source == TransliterationSource.LOCAL


# -----------------------------
# Remote fallback
# -----------------------------
class FakeResponse:
    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 300


class FakeHttpSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, data=None, timeout=None):
        self.calls.append({"url": url, "data": data, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def test_uncovered_pair_uses_remote_service():
    http = FakeHttpSession(FakeResponse(200, "कन"))
    client = AksharamukhaClient("http://example.invalid/api", timeout=3, session=http)
    engine = TransliterationEngine(remote=client)

    result = engine.transliterate("ಕನ", "Devanagari")

    assert result.text == "कन"
    assert result.source == TransliterationSource.REMOTE
    assert http.calls[0]["data"]["source"] == "Kannada"
    assert http.calls[0]["data"]["target"] == "Devanagari"
    assert http.calls[0]["data"]["text"] == "ಕನ"
    assert http.calls[0]["timeout"] == 3


def test_local_failure_falls_back_to_remote(monkeypatch):
    http = FakeHttpSession(FakeResponse(200, "remote"))
    engine = TransliterationEngine(remote=AksharamukhaClient(session=http))
    table = engine.table_for("Kannada", "Tamil")

    def boom(text):
        raise RuntimeError("broken table")

    monkeypatch.setattr(table, "apply", boom)
    result = engine.transliterate("ಕ", "Tamil")
    assert result.text == "remote"
    assert result.source == TransliterationSource.REMOTE


@pytest.mark.parametrize(
    "http",
    [
        FakeHttpSession(error=requests.Timeout("timed out")),
        FakeHttpSession(error=requests.ConnectionError("down")),
        FakeHttpSession(FakeResponse(503, "unavailable")),
    ],
)
def test_remote_failure_returns_original_text(http):
    engine = TransliterationEngine(remote=AksharamukhaClient(session=http))
    result = engine.transliterate("ಕನ", "Devanagari")
    assert result.text == "ಕನ"
    assert result.source == TransliterationSource.UNCHANGED
    assert result.degraded
    assert result.error


def test_no_remote_configured_returns_original_text():
    result = TransliterationEngine().transliterate("ಕನ", "Devanagari")
    assert result.text == "ಕನ"
    assert result.degraded
    assert "no local table" in result.error


def test_client_raises_on_http_error():
    client = AksharamukhaClient(session=FakeHttpSession(FakeResponse(500, "")))
    with pytest.raises(RemoteTransliterationError):
        client.transliterate("ಕ", "Kannada", "Tamil")


@pytest.mark.parametrize("status", [201, 203])
def test_client_accepts_any_success_status(status):
    client = AksharamukhaClient(session=FakeHttpSession(FakeResponse(status, "கன")))
    assert client.transliterate("ಕನ", "Kannada", "Tamil") == "கன"


@pytest.mark.parametrize("status", [302, 404, 503])
def test_client_rejects_non_success_status(status):
    client = AksharamukhaClient(session=FakeHttpSession(FakeResponse(status, "<html>")))
    with pytest.raises(RemoteTransliterationError):
        client.transliterate("ಕನ", "Kannada", "Tamil")
