import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import requests

from .cache import MemoCache
from .debug import debug_log, log
from .models import SearchResult


DEEZER_SEARCH_URL = "https://api.deezer.com/search"
ITUNES_SEARCH_URL = "https://itunes.apple.com/search"
USER_AGENT = "MusicDiscordPresence/1.0"
RESULT_LIMIT = 10

# Checked in order; only the text before the first hit is kept.
ARTIST_SEPARATORS = (",", " & ", " feat.", " ft.", " featuring ", " x ")


@dataclass(frozen=True)
class MatchTuning:
    min_token_length: int = 3


DEFAULT_TUNING = MatchTuning()


def normalize_text(value: Optional[str]) -> str:
    if not value or not isinstance(value, str):
        return ""
    value = unicodedata.normalize("NFKD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = value.lower()
    value = re.sub(r"[^\w\s]|_", " ", value)
    return " ".join(value.split())


def primary_artist(artist: Optional[str]) -> str:
    if not artist:
        return ""
    lowered = artist.lower()
    cut = len(artist)
    for sep in ARTIST_SEPARATORS:
        idx = lowered.find(sep)
        if idx != -1:
            cut = min(cut, idx)
    return artist[:cut].strip()


def query_candidates(title: str, artist: Optional[str]) -> List[str]:
    title = (title or "").strip()
    artist = (artist or "").strip()
    title_norm = normalize_text(title)
    artist_norm = normalize_text(artist)
    primary = normalize_text(primary_artist(artist))

    candidates = [
        f"{title} {artist}",
        title,
        f"{title_norm} {artist_norm}",
    ]
    if primary and primary != artist_norm:
        candidates.append(f"{title_norm} {primary}")
    candidates.append(title_norm)
    candidates.append(primary)

    seen = set()
    ordered = []
    for c in candidates:
        c = " ".join(c.split())
        if c and c not in seen:
            seen.add(c)
            ordered.append(c)
    return ordered


def _tokens(value: str, tuning: MatchTuning) -> set:
    return {t for t in value.split() if len(t) >= tuning.min_token_length}


def matches(
    result: SearchResult,
    expected_title: str,
    expected_artist: Optional[str],
    tuning: MatchTuning = DEFAULT_TUNING,
) -> bool:
    """
    Loose match of a search hit against the track we are showing.

    Either side containing the other, or a shared word, is enough. This keeps
    stylized titles and "(Remastered 2009)" suffixes matching, at the price of
    the occasional wrong cover.

    A hit with an empty title never matches. A hit with an empty artist never
    matches when an artist is expected; with no expected artist, the artist
    check is skipped.
    """
    result_artist = normalize_text(result.artist_name)
    want_artist = normalize_text(expected_artist)
    if want_artist:
        artist_ok = bool(result_artist) and (
            want_artist in result_artist
            or result_artist in want_artist
            or any(tok in want_artist for tok in _tokens(result_artist, tuning))
        )
        if not artist_ok:
            return False

    result_title = normalize_text(result.track_name)
    want_title = normalize_text(expected_title)
    if not result_title or not want_title:
        return False
    if _tokens(result_title, tuning) & _tokens(want_title, tuning):
        return True
    return want_title in result_title or result_title in want_title


def _text(value) -> str:
    return value if isinstance(value, str) else ""


def _items(data: dict, key: str) -> list:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise ValueError(f"{key!r} is not a list: {items!r:.200}")
    return [item for item in items if isinstance(item, dict)]


class DeezerProvider:
    name = "deezer"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 4.0):
        self.session = session or _HTTP
        self.timeout = timeout

    def search(self, query: str) -> List[SearchResult]:
        r = self.session.get(
            DEEZER_SEARCH_URL,
            params={"q": query, "limit": RESULT_LIMIT},
            headers={"User-Agent": USER_AGENT},
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict) or data.get("error"):
            raise ValueError(f"deezer error payload: {data!r:.200}")

        results = []
        for item in _items(data, "data"):
            album = item.get("album")
            album = album if isinstance(album, dict) else {}
            artist = item.get("artist")
            artist = artist if isinstance(artist, dict) else {}
            covers = tuple(
                u
                for u in (
                    _text(album.get("cover_xl")),
                    _text(album.get("cover_big")),
                    _text(album.get("cover_medium")),
                    _text(album.get("cover")),
                )
                if u
            )
            results.append(
                SearchResult(
                    track_name=_text(item.get("title")),
                    artist_name=_text(artist.get("name")),
                    artwork_urls=covers,
                )
            )
        return results


class ITunesProvider:
    name = "itunes"

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 4.0):
        self.session = session or _HTTP
        self.timeout = timeout

    def search(self, query: str) -> List[SearchResult]:
        r = self.session.get(
            ITUNES_SEARCH_URL,
            params={"term": query, "media": "music", "entity": "song", "limit": RESULT_LIMIT},
            headers={"User-Agent": USER_AGENT},
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise ValueError("itunes payload is not an object")

        results = []
        for item in _items(data, "results"):
            artwork = (
                _text(item.get("artworkUrl100")) or _text(item.get("artworkUrl60")) or _text(item.get("artworkUrl30"))
            )
            urls: Tuple[str, ...] = ()
            if artwork:
                urls = (re.sub(r"/\d+x\d+", "/512x512", artwork), artwork)
            results.append(
                SearchResult(
                    track_name=_text(item.get("trackName")),
                    artist_name=_text(item.get("artistName")),
                    artwork_urls=urls,
                )
            )
        return results


class ArtworkResolver:
    def __init__(
        self,
        providers: Optional[Sequence] = None,
        cache: Optional[MemoCache] = None,
        tuning: MatchTuning = DEFAULT_TUNING,
    ):
        self.providers = list(providers) if providers is not None else [DeezerProvider(), ITunesProvider()]
        self.cache = cache if cache is not None else MemoCache()
        self.tuning = tuning

    def resolve(self, title: str, artist: Optional[str]) -> Optional[str]:
        if not title:
            return None

        key = (normalize_text(title), normalize_text(artist))
        hit, cached = self.cache.get(key)
        if hit:
            return cached

        url = self._lookup(title, artist)
        self.cache.set(key, url)
        if url:
            log("Artwork", f'Found artwork for "{title}"')
        else:
            log("Artwork", f'No artwork for "{title}"')
        return url

    def _lookup(self, title: str, artist: Optional[str]) -> Optional[str]:
        for query in query_candidates(title, artist):
            for provider in self.providers:
                url = self._first_match(provider, query, title, artist)
                if url:
                    debug_log(f"{provider.name} matched query {query!r}: {url}")
                    return url
        return None

    def _first_match(self, provider, query: str, title: str, artist: Optional[str]) -> Optional[str]:
        try:
            results: Iterable[SearchResult] = provider.search(query)
        except (requests.RequestException, ValueError) as e:
            debug_log(f"{provider.name} search {query!r} failed: {e}")
            return None

        for result in results:
            if result.artwork_urls and matches(result, title, artist, self.tuning):
                return result.artwork_urls[0]
        return None


_HTTP = requests.Session()
