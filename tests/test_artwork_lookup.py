from unittest.mock import Mock

import pytest
import requests

from core.artwork_lookup import (
    ArtworkResolver,
    DeezerProvider,
    ITunesProvider,
    MatchTuning,
    matches,
    normalize_text,
    primary_artist,
    query_candidates,
)
from core.cache import MemoCache
from core.models import SearchResult


class FakeProvider:
    def __init__(self, name, responses=None, error=None):
        self.name = name
        self.responses = responses or {}
        self.error = error
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.responses.get(query, [])


def hit(track, artist, url="https://img/cover.jpg"):
    return SearchResult(track_name=track, artist_name=artist, artwork_urls=(url,) if url else ())


def test_normalize_text():
    assert normalize_text("Beyoncé — Halo!") == "beyonce halo"
    assert normalize_text("  Let   It\tBe (Remastered 2009) ") == "let it be remastered 2009"
    assert normalize_text("Кино: Группа крови") == "кино группа крови"
    assert normalize_text(None) == ""


@pytest.mark.parametrize(
    "artist, expected",
    [
        ("The Weeknd", "The Weeknd"),
        ("Calvin Harris, Dua Lipa", "Calvin Harris"),
        ("Simon & Garfunkel", "Simon"),
        ("Drake feat. Rihanna", "Drake"),
        ("Drake FT. Rihanna", "Drake"),
        ("Eminem featuring Dido", "Eminem"),
        ("Skrillex x Fred again..", "Skrillex"),
        ("Lil Nas X", "Lil Nas X"),
        ("", ""),
    ],
)
def test_primary_artist(artist, expected):
    assert primary_artist(artist) == expected


def test_query_candidates_order():
    assert query_candidates("Señorita!", "Shawn Mendes, Camila Cabello") == [
        "Señorita! Shawn Mendes, Camila Cabello",
        "Señorita!",
        "senorita shawn mendes camila cabello",
        "senorita shawn mendes",
        "senorita",
        "shawn mendes",
    ]


def test_query_candidates_drop_duplicates():
    assert query_candidates("hello", "adele") == ["hello adele", "hello", "adele"]
    assert query_candidates("Hello", None) == ["Hello", "hello"]


def test_match_remaster_suffix():
    result = SearchResult(track_name="Let It Be (Remastered 2009)", artist_name="The Beatles")
    assert matches(result, "Let It Be", "The Beatles") is True


def test_match_requires_title_overlap():
    result = SearchResult(track_name="Yesterday", artist_name="The Beatles")
    assert matches(result, "Let It Be", "The Beatles") is False


def test_match_requires_artist():
    result = SearchResult(track_name="Let It Be", artist_name="Aretha Franklin")
    assert matches(result, "Let It Be", "The Beatles") is False


def test_match_without_expected_artist():
    result = SearchResult(track_name="Let It Be", artist_name="Anyone")
    assert matches(result, "Let It Be", None) is True


def test_match_multi_artist_credit():
    result = SearchResult(track_name="One Kiss", artist_name="Calvin Harris")
    assert matches(result, "One Kiss", "Calvin Harris, Dua Lipa") is True

    result = SearchResult(track_name="One Kiss", artist_name="Calvin Harris & Dua Lipa")
    assert matches(result, "One Kiss", "Dua Lipa") is True


def test_match_token_length_is_tunable():
    result = SearchResult(track_name="Be Mine", artist_name="X")
    assert matches(result, "Let It Be", None) is False
    assert matches(result, "Let It Be", None, MatchTuning(min_token_length=2)) is True


def test_resolver_prefers_first_provider():
    deezer = FakeProvider("deezer", {"Blinding Lights The Weeknd": [hit("Blinding Lights", "The Weeknd", "https://deezer/xl.jpg")]})
    itunes = FakeProvider("itunes", {"Blinding Lights The Weeknd": [hit("Blinding Lights", "The Weeknd", "https://itunes/512.jpg")]})
    resolver = ArtworkResolver(providers=[deezer, itunes])

    assert resolver.resolve("Blinding Lights", "The Weeknd") == "https://deezer/xl.jpg"
    assert itunes.queries == []


def test_resolver_skips_non_matching_results_and_falls_through():
    deezer = FakeProvider("deezer", {"Blinding Lights The Weeknd": [hit("Save Your Tears", "The Weeknd")]})
    itunes = FakeProvider(
        "itunes",
        {
            "Blinding Lights The Weeknd": [
                hit("Blinding Lights", "The Weeknd", url=None),
                hit("Blinding Lights", "The Weeknd", "https://itunes/512.jpg"),
            ]
        },
    )
    resolver = ArtworkResolver(providers=[deezer, itunes])

    assert resolver.resolve("Blinding Lights", "The Weeknd") == "https://itunes/512.jpg"


def test_resolver_tries_generic_candidates():
    deezer = FakeProvider("deezer", {"my song": [hit("My Song", "Band")]})
    resolver = ArtworkResolver(providers=[deezer])

    assert resolver.resolve("My Song!!", "Band") == "https://img/cover.jpg"
    assert deezer.queries == ["My Song!! Band", "My Song!!", "my song band", "my song"]


def test_resolver_provider_errors_do_not_abort():
    broken = FakeProvider("deezer", error=requests.ConnectionError("offline"))
    itunes = FakeProvider("itunes", {"Halo": [hit("Halo", "Beyoncé")]})
    resolver = ArtworkResolver(providers=[broken, itunes])

    assert resolver.resolve("Halo", "Beyonce") == "https://img/cover.jpg"
    assert len(broken.queries) == 2


def test_resolver_caches_hits_and_misses():
    deezer = FakeProvider("deezer")
    cache = MemoCache()
    resolver = ArtworkResolver(providers=[deezer], cache=cache)

    assert resolver.resolve("Nothing", "Nobody") is None
    first = len(deezer.queries)
    assert first > 0
    assert resolver.resolve("Nothing", "Nobody") is None
    assert resolver.resolve("nothing!", "NOBODY") is None
    assert len(deezer.queries) == first
    assert cache.get(("nothing", "nobody")) == (True, None)


def test_resolver_empty_title():
    deezer = FakeProvider("deezer")
    assert ArtworkResolver(providers=[deezer]).resolve("", "x") is None
    assert deezer.queries == []


def _session(payload=None, status=200, json_error=None):
    response = Mock()
    response.status_code = status
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status}")
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    session = Mock()
    session.get.return_value = response
    return session


def test_deezer_provider_parses_results():
    session = _session(
        {
            "data": [
                {
                    "title": "Blinding Lights",
                    "artist": {"name": "The Weeknd"},
                    "album": {"cover": "c", "cover_medium": "m", "cover_big": "b", "cover_xl": "xl"},
                },
                {"title": "No Cover", "artist": {"name": "Someone"}},
            ]
        }
    )
    results = DeezerProvider(session=session, timeout=3).search("blinding lights")

    assert results[0] == SearchResult("Blinding Lights", "The Weeknd", ("xl", "b", "m", "c"))
    assert results[1].artwork_urls == ()
    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"q": "blinding lights", "limit": 10}
    assert kwargs["timeout"] == 3


def test_deezer_error_payload_raises():
    session = _session({"error": {"type": "Exception", "message": "Quota limit exceeded", "code": 4}})
    with pytest.raises(ValueError):
        DeezerProvider(session=session).search("x")


def test_itunes_provider_upsizes_artwork():
    session = _session(
        {
            "resultCount": 1,
            "results": [
                {
                    "trackName": "Let It Be",
                    "artistName": "The Beatles",
                    "artworkUrl100": "https://is1.mzstatic.com/image/thumb/a/100x100bb.jpg",
                }
            ],
        }
    )
    results = ITunesProvider(session=session).search("let it be")

    assert results[0].artwork_urls[0] == "https://is1.mzstatic.com/image/thumb/a/512x512bb.jpg"
    _, kwargs = session.get.call_args
    assert kwargs["params"]["entity"] == "song"
    assert kwargs["params"]["limit"] == 10


def test_http_failures_are_swallowed_by_resolver():
    bad_status = ITunesProvider(session=_session(status=503))
    bad_json = DeezerProvider(session=_session(json_error=ValueError("no json")))
    resolver = ArtworkResolver(providers=[bad_json, bad_status])

    assert resolver.resolve("Song", "Artist") is None


def test_match_empty_result_artist_or_title():
    assert matches(SearchResult(track_name="Let It Be", artist_name=""), "Let It Be", "The Beatles") is False
    assert matches(SearchResult(track_name="", artist_name="The Beatles"), "Let It Be", "The Beatles") is False
    assert matches(SearchResult(track_name="Let It Be", artist_name=""), "Let It Be", None) is True


def test_normalize_text_ignores_non_strings():
    assert normalize_text(123) == ""
    assert normalize_text({"name": "x"}) == ""


def test_deezer_malformed_items_are_tolerated():
    session = _session(
        {
            "data": [
                {"title": "Halo", "album": "oops", "artist": ["Beyonce"]},
                {"title": 42, "artist": {"name": None}, "album": {"cover_xl": 7, "cover_big": "b"}},
                "not an item",
            ]
        }
    )
    results = DeezerProvider(session=session).search("halo")

    assert results == [
        SearchResult("Halo", "", ()),
        SearchResult("", "", ("b",)),
    ]


def test_itunes_malformed_items_are_tolerated():
    session = _session(
        {"results": [{"trackName": 123, "artistName": "The Beatles", "artworkUrl100": {"url": "x"}}]}
    )
    results = ITunesProvider(session=session).search("let it be")

    assert results == [SearchResult("", "The Beatles", ())]


def test_non_list_results_raise_value_error():
    with pytest.raises(ValueError):
        DeezerProvider(session=_session({"data": 5})).search("x")
    with pytest.raises(ValueError):
        ITunesProvider(session=_session({"results": {"trackName": "x"}})).search("x")


def test_malformed_provider_payload_falls_through_to_next_provider():
    deezer = DeezerProvider(session=_session({"data": [{"title": "Halo", "album": "oops", "artist": {"name": "Beyonce"}}]}))
    itunes = ITunesProvider(
        session=_session(
            {
                "results": [
                    {
                        "trackName": "Halo",
                        "artistName": "Beyoncé",
                        "artworkUrl100": "https://is1.mzstatic.com/image/thumb/h/100x100bb.jpg",
                    }
                ]
            }
        )
    )
    resolver = ArtworkResolver(providers=[deezer, itunes])

    assert resolver.resolve("Halo", "Beyonce") == "https://is1.mzstatic.com/image/thumb/h/512x512bb.jpg"
