import pytest

from chivoice import languages as languages_mod
from chivoice.errors import LanguageNotFound, PersistenceError
from chivoice.languages import (
    SEED_LANGUAGES,
    find_glottolog_name,
    resolve_language,
    seed_languages,
    upsert_language,
)
from chivoice.settings import settings

GLOTTOLOG_CSV = """glottocode,name,macroarea
abkh1244,Abkhaz,Eurasia
basq1248,Basque,Eurasia
ainu1240,Ainu (Japan),Eurasia
"""


def test_resolve_by_id_and_code(repo, language):
    assert resolve_language(repo, language.id).code == "qu"
    assert resolve_language(repo, "qu").id == language.id


def test_unknown_without_glottolog(repo):
    with pytest.raises(LanguageNotFound):
        resolve_language(repo, "zz")


def test_glottolog_lookup_creates_language_with_starters(repo, monkeypatch):
    monkeypatch.setattr(settings, "GLOTTOLOG_CSV_URL", "https://glottolog.test/languages.csv")
    fetched = []

    def fetch(url):
        fetched.append(url)
        return GLOTTOLOG_CSV

    lang = resolve_language(repo, "ainu1240", fetch_csv=fetch)
    assert lang.name == "Ainu (Japan)"
    assert lang.code == "ainu1240"
    assert not lang.is_popular
    assert repo.count_tasks(lang.id) == 20
    assert fetched == ["https://glottolog.test/languages.csv"]

    with pytest.raises(LanguageNotFound):
        resolve_language(repo, "nope1234", fetch_csv=fetch)


def test_glottolog_fetch_failure_is_not_found(repo, monkeypatch):
    monkeypatch.setattr(settings, "GLOTTOLOG_CSV_URL", "https://glottolog.test/languages.csv")
    with pytest.raises(LanguageNotFound):
        resolve_language(repo, "abkh1244", fetch_csv=lambda url: None)


def test_find_glottolog_name_without_header_names():
    csv_text = "a,b\nxyz1234,Some Language\n"
    assert find_glottolog_name(csv_text, "xyz1234") == "Some Language"
    assert find_glottolog_name("", "xyz1234") is None


def test_fetch_csv_uses_requests(monkeypatch):
    class Response:
        status_code = 200
        text = GLOTTOLOG_CSV

    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return Response()

    monkeypatch.setattr(languages_mod.requests, "get", fake_get)
    assert languages_mod._fetch_csv("https://glottolog.test/x.csv") == GLOTTOLOG_CSV
    assert calls == [("https://glottolog.test/x.csv", 15)]


def test_upsert_returns_existing_by_code(repo, language):
    assert upsert_language(repo, code="qu", name="Whatever").id == language.id


def test_upsert_backfills_code_by_name(repo, language):
    updated = upsert_language(repo, code="que", name="Quechua")
    assert updated.id == language.id
    assert updated.code == "que"
    assert repo.get_language_by_code("que").id == language.id


def test_upsert_creates_language_with_starters(repo):
    lang = upsert_language(repo, code="ain", name="Ainu")
    assert repo.count_tasks(lang.id) == 20


def test_upsert_requires_code_and_name(repo):
    with pytest.raises(ValueError):
        upsert_language(repo, code=" ", name="Ainu")


def test_seed_languages_is_idempotent(repo):
    assert seed_languages(repo) == len(SEED_LANGUAGES)
    assert seed_languages(repo) == 0
    listed = repo.list_languages()
    assert listed[0].is_popular
    assert all(repo.count_tasks(lang.id) == 20 for lang in listed)


def test_glottolog_name_match_backfills_existing_language(repo, monkeypatch):
    monkeypatch.setattr(settings, "GLOTTOLOG_CSV_URL", "https://glottolog.test/languages.csv")
    basque = repo.insert_language(name="Basque", code="eu")
    repo.seed_starter_tasks(basque.id)

    lang = resolve_language(repo, "basq1248", fetch_csv=lambda url: GLOTTOLOG_CSV)

    assert lang.id == basque.id
    assert lang.code == "basq1248"
    assert len(repo.languages) == 1
    assert repo.count_tasks(basque.id) == 20


def test_duplicate_language_name_is_rejected_by_store(repo, language):
    with pytest.raises(PersistenceError):
        repo.insert_language(name=language.name, code="que")
