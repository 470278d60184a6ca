import json
from datetime import date

from decode_daily.services.puzzles.catalog import (
    FALLBACK_MASTER_WORDS,
    PuzzleCatalog,
    default_catalog_dir,
    load_catalogs,
    load_master_words,
)
from decode_daily.services.puzzles.entries import CodePuzzle, WordSet


def test_lookup_by_day_key_and_authoring_order_kept():
    payload = [
        {'id': '2026-10-20', 'date': '2026-10-20', 'peg1': 1, 'peg2': 1, 'peg3': 1, 'peg4': 1, 'peg5': 1},
        {'id': '2026-10-02', 'date': '2026-10-02', 'peg1': 2, 'peg2': 2, 'peg3': 2, 'peg4': 2, 'peg5': 2},
    ]
    catalog = PuzzleCatalog.load('decode', payload)
    assert len(catalog) == 2
    assert catalog.lookup('2026-10-02').pegs == (2, 2, 2, 2, 2)
    assert catalog.lookup(date(2026, 10, 20)).pegs == (1, 1, 1, 1, 1)
    assert catalog.lookup('2026-10-03') is None
    # first and last as authored, not min/max
    assert catalog.date_range(date(2026, 10, 18)) == (date(2026, 10, 20), date(2026, 10, 2))
    assert catalog.available_dates() == [date(2026, 10, 20), date(2026, 10, 2)]


def test_empty_catalog_range_falls_back_to_thirty_days():
    catalog = PuzzleCatalog('anagrams')
    assert catalog.date_range(date(2026, 10, 18)) == (date(2026, 9, 18), date(2026, 10, 18))


def test_missing_file_degrades_to_empty(tmp_path, caplog):
    caplog.set_level('WARNING')
    catalog = PuzzleCatalog.load('decode', tmp_path / 'nope.json')
    assert len(catalog) == 0
    assert catalog.load_error
    assert any('[catalog-missing]' in r.getMessage() for r in caplog.records)


def test_corrupt_file_degrades_to_empty(tmp_path):
    path = tmp_path / 'DailyCodes.json'
    path.write_text('[{"id": "2026-10-18", "peg1": ', encoding='utf-8')
    catalog = PuzzleCatalog.load('decode', path)
    assert len(catalog) == 0
    assert 'JSON' in catalog.load_error


def test_one_bad_record_empties_the_catalog():
    payload = [
        {'id': '2026-10-18', 'date': '2026-10-18', 'peg1': 1, 'peg2': 2, 'peg3': 3, 'peg4': 4, 'peg5': 5},
        {'id': '2026-10-19', 'date': '2026-10-19', 'peg1': 9, 'peg2': 2, 'peg3': 3, 'peg4': 4, 'peg5': 5},
    ]
    catalog = PuzzleCatalog.load('decode', payload)
    assert len(catalog) == 0
    assert catalog.lookup('2026-10-18') is None


def test_word_sets_are_upper_cased():
    catalog = PuzzleCatalog.load('anagrams', [{'date': '2026-10-18', 'words': ['cat', 'Dog']}])
    entry = catalog.lookup('2026-10-18')
    assert isinstance(entry, WordSet)
    assert entry.words == ('CAT', 'DOG')
    assert entry.id == '2026-10-18'


def test_master_words_dedupe_and_fallback(tmp_path):
    assert load_master_words(['cat', 'CAT', ' dog ']) == ['CAT', 'DOG']
    assert load_master_words(tmp_path / 'missing.json') == list(FALLBACK_MASTER_WORDS)
    assert load_master_words([]) == list(FALLBACK_MASTER_WORDS)
    assert len(FALLBACK_MASTER_WORDS) >= 30


def test_bundled_catalogs_load_cleanly():
    base = default_catalog_dir()
    catalogs = load_catalogs(base)
    for game_id, catalog in catalogs.items():
        assert catalog.load_error is None, game_id
        assert len(catalog) > 0
    assert isinstance(catalogs['decode'].entries[0], CodePuzzle)
    words = json.loads((base / 'MasterWordList.json').read_text(encoding='utf-8'))
    assert len(load_master_words(words)) == len(words)
