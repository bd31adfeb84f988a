# chivoice/languages.py
from __future__ import annotations

import csv
import io
from typing import Callable, List, Optional, Tuple

import requests

from .errors import LanguageNotFound
from .schemas import Language
from .settings import settings

# (name, code, is_popular)
SEED_LANGUAGES: List[Tuple[str, str, bool]] = [
    ("English", "en", True),
    ("Spanish", "es", True),
    ("French", "fr", True),
    ("German", "de", True),
    ("Portuguese", "pt", True),
    ("Russian", "ru", True),
    ("Chinese (Mandarin)", "zh", True),
    ("Arabic", "ar", True),
    ("Hindi", "hi", True),
    ("Kazakh", "kk", True),
    ("Kyrgyz", "ky", False),
    ("Uzbek", "uz", False),
    ("Mongolian", "mn", False),
    ("Tibetan", "bo", False),
    ("Uyghur", "ug", False),
    ("Chechen", "ce", False),
    ("Tatar", "tt", False),
    ("Bashkir", "ba", False),
    ("Yakut (Sakha)", "sah", False),
    ("Chuvash", "cv", False),
    ("Udmurt", "udm", False),
    ("Komi", "kv", False),
    ("Nenets", "yrk", False),
    ("Evenk", "evn", False),
    ("Manchu", "mnc", False),
    ("Swahili", "sw", False),
    ("Zulu", "zu", False),
    ("Xhosa", "xh", False),
    ("Yoruba", "yo", False),
    ("Igbo", "ig", False),
    ("Hausa", "ha", False),
    ("Amharic", "am", False),
    ("Quechua", "qu", False),
    ("Cherokee", "chr", False),
    ("Navajo", "nv", False),
    ("Hawaiian", "haw", False),
    ("Maori", "mi", False),
    ("Welsh", "cy", False),
    ("Irish", "ga", False),
    ("Scottish Gaelic", "gd", False),
    ("Basque", "eu", False),
]

CsvFetcher = Callable[[str], Optional[str]]


def _fetch_csv(url: str, timeout_sec: int = 15) -> Optional[str]:
    """Any error => None (resolution simply fails)."""
    try:
        r = requests.get(url, timeout=timeout_sec)
        if r.status_code != 200:
            print(f"[languages] Glottolog CSV fetch failed: {r.status_code}")
            return None
        return r.text
    except Exception as e:
        print(f"[languages] Glottolog CSV fetch error: {e!r}")
        return None


def find_glottolog_name(csv_text: str, glottocode: str) -> Optional[str]:
    """
    Find the display name for a glottocode in a Glottolog export.
    Uses the `glottocode`/`id` and `name` columns when present, else the first
    two columns.
    """
    if not csv_text or not glottocode:
        return None

    reader = csv.reader(io.StringIO(csv_text))
    header = next(reader, None)
    if not header:
        return None
    cols = [h.strip().lower() for h in header]
    id_idx = next((cols.index(k) for k in ("glottocode", "id") if k in cols), 0)
    name_idx = cols.index("name") if "name" in cols else 1

    for values in reader:
        if len(values) <= max(id_idx, name_idx):
            continue
        if values[id_idx].strip() == glottocode:
            name = values[name_idx].strip()
            return name if len(name) > 1 else None
    return None


def _create_with_starters(repo, *, name: str, code: str, is_popular: bool = False) -> Language:
    language = repo.insert_language(name=name, code=code, is_popular=is_popular)
    repo.seed_starter_tasks(language.id)
    return language


def resolve_language(repo, identifier: str, *, fetch_csv: Optional[CsvFetcher] = None) -> Language:
    """
    Resolve a client-supplied language identifier (UUID or code).
    Unknown codes are looked up in the Glottolog CSV, when configured, and
    created on the fly.
    """
    language = repo.get_language(identifier)
    if language:
        return language

    url = (settings.GLOTTOLOG_CSV_URL or "").strip()
    if not url:
        raise LanguageNotFound()

    print(f"[languages] {identifier} not in database, checking Glottolog")
    csv_text = (fetch_csv or _fetch_csv)(url)
    name = find_glottolog_name(csv_text or "", identifier)
    if not name:
        raise LanguageNotFound()

    language = upsert_language(repo, code=identifier, name=name)
    print(f"[languages] Resolved {identifier} to {language.name} via Glottolog")
    return language


def upsert_language(repo, *, code: str, name: str) -> Language:
    """Find by code, else by name (backfilling a different code), else create."""
    code = (code or "").strip()
    name = (name or "").strip()
    if not code or not name:
        raise ValueError("code and name are required")

    by_code = repo.get_language_by_code(code)
    if by_code:
        return by_code

    by_name = repo.get_language_by_name(name)
    if by_name:
        if by_name.code != code:
            return repo.update_language_code(by_name.id, code)
        return by_name

    return _create_with_starters(repo, name=name, code=code)


def list_languages(repo) -> List[Language]:
    """Popular languages first, then alphabetical."""
    return repo.list_languages()


def seed_languages(repo) -> int:
    """Insert the seed list (idempotent) and make sure every language has its starter sequence."""
    inserted = repo.seed_languages(SEED_LANGUAGES)
    for language in list_languages(repo):
        repo.seed_starter_tasks(language.id)
    return inserted
