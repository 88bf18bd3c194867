"""
Cross-user watchlist aggregation.

Turns N users' film lists into one ranked list of films common to their
watchlists, annotated with how many of the users already watched each one.
"""

from __future__ import annotations

from fractions import Fraction
from functools import cmp_to_key
from typing import Dict, List, Sequence

from ..domain import AggregatedFilm, AnalysisResult, UserFilmData, normalize_film_id

WATCHED_SCOPE_GLOBAL = "global"
WATCHED_SCOPE_WATCHLIST = "watchlist"
WATCHED_SCOPES = (WATCHED_SCOPE_GLOBAL, WATCHED_SCOPE_WATCHLIST)

MIN_COMMON_WATCHLISTS = 2


def aggregate(
    users_data: Sequence[UserFilmData],
    *,
    watched_scope: str = WATCHED_SCOPE_GLOBAL,
) -> AnalysisResult:
    """
    Compute the common-film set for ``users_data``.

    With more than one user only films present in at least two watchlists are
    kept; a single user gets their whole watchlist back. ``watched_scope``
    selects whether a film counts as watched by every analysed user who has
    seen it (``"global"``) or only by users who also have it in their own
    watchlist (``"watchlist"``).
    """
    if watched_scope not in WATCHED_SCOPES:
        raise ValueError(f"Unsupported watched scope '{watched_scope}'.")
    total_users = len(users_data)
    if total_users == 0:
        return AnalysisResult.build(0, [])

    candidates = collect_candidates(users_data)
    count_watched(candidates, users_data, watched_scope=watched_scope)

    films = list(candidates.values())
    if total_users > 1:
        films = [film for film in films if film.in_watchlist_count >= MIN_COMMON_WATCHLISTS]

    ranked = sort_by_relevance(films, total_users)
    for film in ranked:
        film.priority = calculate_priority(film, total_users)
    return AnalysisResult.build(total_users, ranked)


def collect_candidates(users_data: Sequence[UserFilmData]) -> Dict[str, AggregatedFilm]:
    candidates: Dict[str, AggregatedFilm] = {}
    for user in users_data:
        seen: set[str] = set()
        for film in user.watchlist:
            # A film can show up twice if the watchlist shifts between page fetches.
            if film.id in seen:
                continue
            seen.add(film.id)
            aggregated = candidates.get(film.id)
            if aggregated is None:
                aggregated = AggregatedFilm.seed(film)
                candidates[film.id] = aggregated
            aggregated.in_watchlist_count += 1
            aggregated.watchlist_users.append(user.username)
    return candidates


def count_watched(
    candidates: Dict[str, AggregatedFilm],
    users_data: Sequence[UserFilmData],
    *,
    watched_scope: str = WATCHED_SCOPE_GLOBAL,
) -> None:
    watched_sets = [
        (user.username, {normalize_film_id(film_id) for film_id in user.watched}) for user in users_data
    ]
    for film_id, film in candidates.items():
        normalized_id = normalize_film_id(film_id)
        for username, watched in watched_sets:
            if watched_scope == WATCHED_SCOPE_WATCHLIST and username not in film.watchlist_users:
                continue
            if normalized_id in watched:
                film.watched_count += 1
                film.watched_by_users.append(username)


def watchlist_ratio(film: AggregatedFilm, total_users: int) -> Fraction:
    return Fraction(film.in_watchlist_count, total_users)


def watched_ratio(film: AggregatedFilm, total_users: int) -> Fraction:
    return Fraction(film.watched_count, total_users)


def compare_relevance(a: AggregatedFilm, b: AggregatedFilm, total_users: int) -> int:
    """Negative when ``a`` ranks before ``b``. Rules are checked in order."""
    a_list, b_list = watchlist_ratio(a, total_users), watchlist_ratio(b, total_users)
    a_seen, b_seen = watched_ratio(a, total_users), watched_ratio(b, total_users)

    if a_seen == 0 and b_seen > 0:
        return -1
    if b_seen == 0 and a_seen > 0:
        return 1

    if a_seen == 0 and b_seen == 0 and a_list != b_list:
        return -1 if a_list > b_list else 1

    if a_list == 1 and b_list < 1:
        return -1
    if b_list == 1 and a_list < 1:
        return 1

    if a_list != b_list:
        return -1 if a_list > b_list else 1

    if a_seen != b_seen:
        return -1 if a_seen < b_seen else 1
    return 0


def sort_by_relevance(films: Sequence[AggregatedFilm], total_users: int) -> List[AggregatedFilm]:
    return sorted(films, key=cmp_to_key(lambda a, b: compare_relevance(a, b, total_users)))


def calculate_priority(film: AggregatedFilm, total_users: int) -> int:
    list_ratio = watchlist_ratio(film, total_users)
    seen_ratio = watched_ratio(film, total_users)

    if list_ratio == 1 and seen_ratio == 0:
        return 1
    if list_ratio >= Fraction(3, 5) and seen_ratio == 0:
        return 2
    if list_ratio >= Fraction(3, 10) and seen_ratio == 0:
        return 3
    if list_ratio == 1 and seen_ratio > 0:
        return 4
    if list_ratio >= Fraction(3, 5) and seen_ratio > 0:
        return 5
    return 6
