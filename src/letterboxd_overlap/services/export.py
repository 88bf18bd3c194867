from __future__ import annotations

import csv
from pathlib import Path

from ..domain import AnalysisResult


def export_analysis_to_csv(result: AnalysisResult, output_path: Path) -> int:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(
            [
                "Rank",
                "Priority",
                "Title",
                "Slug",
                "Film ID",
                "In Watchlists",
                "Watched",
                "Watchlist Users",
                "Watched By",
                "Poster URL",
            ]
        )
        for rank, movie in enumerate(result.movies, start=1):
            writer.writerow(
                [
                    rank,
                    movie.priority,
                    movie.title,
                    movie.slug,
                    movie.id,
                    f"{movie.in_watchlist_count}/{result.total_users}",
                    f"{movie.watched_count}/{result.total_users}",
                    " ".join(movie.watchlist_users),
                    " ".join(movie.watched_by_users),
                    movie.poster_url or "",
                ]
            )
    return len(result.movies)
