from bibverify.core.identifiers import (
    author_surnames,
    extract_surname,
    normalize_doi,
    normalize_title,
    split_authors,
    surname_of,
)


def test_normalize_doi_strips_prefixes_and_lowercases():
    assert normalize_doi("https://doi.org/10.1000/ABC") == "10.1000/abc"
    assert normalize_doi("DOI:10.1000/XYZ") == "10.1000/xyz"
    assert normalize_doi("  HTTP://DX.DOI.ORG/10.5555/ABC  ") == "10.5555/abc"


def test_normalize_doi_handles_empty_values():
    assert normalize_doi("") is None
    assert normalize_doi("   ") is None
    assert normalize_doi(None) is None


def test_normalize_title_ignores_case_and_trailing_punctuation():
    assert normalize_title("Attention Is All You Need") == "attention is all you need"
    assert normalize_title("Attention is all you need.") == "attention is all you need"


def test_normalize_title_drops_stopwords_and_subtitle_punctuation():
    assert (
        normalize_title("The Analysis of Graphs: A Survey (Revised)")
        == "analysis graphs survey revised"
    )
    assert normalize_title("Learning-Based Control") == "learning control"


def test_normalize_title_folds_accents():
    assert normalize_title("Théorie des Ensembles") == "theorie des ensembles"


def test_normalize_title_is_total():
    assert normalize_title(None) == ""
    assert normalize_title("") == ""
    assert normalize_title("?!") == ""


def test_extract_surname_returns_last_word_of_first_group():
    assert extract_surname("John Smith and Jane Doe") == "Smith"
    assert extract_surname("Smith, J.; Doe, A.") == "Smith"
    assert extract_surname("") == ""
    assert extract_surname(None) == ""


def test_split_authors_pairs_surnames_with_initials():
    assert split_authors("Smith, J., Doe, A.") == ["Smith, J.", "Doe, A."]
    assert split_authors("Smith, John") == ["Smith, John"]


def test_split_authors_handles_given_family_lists_and_separators():
    assert split_authors("Jane Doe, John Smith") == ["Jane Doe", "John Smith"]
    assert split_authors("Vaswani, A. and Shazeer, N. et al.") == ["Vaswani, A.", "Shazeer, N."]
    assert split_authors("Doe, A. & Roe, B.; Poe, C.") == ["Doe, A.", "Roe, B.", "Poe, C."]


def test_surname_of_handles_common_name_shapes():
    assert surname_of("Smith, J.") == "smith"
    assert surname_of("John Smith") == "smith"
    assert surname_of("Smith J") == "smith"
    assert surname_of("Martin Luther King Jr.") == "king"
    assert surname_of("José Núñez") == "nunez"


def test_author_surnames_skips_short_names():
    assert author_surnames("Li, X.; Smith, J.") == {"smith"}
    assert author_surnames("") == set()
