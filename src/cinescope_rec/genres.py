"""TMDB movie genre ids and their display names."""

GENRE_NAMES: dict[int, str] = {
    28: "Action",
    12: "Adventure",
    16: "Animation",
    35: "Comedy",
    80: "Crime",
    99: "Documentary",
    18: "Drama",
    10751: "Family",
    14: "Fantasy",
    36: "History",
    27: "Horror",
    10402: "Music",
    9648: "Mystery",
    10749: "Romance",
    878: "Science Fiction",
    10770: "TV Movie",
    53: "Thriller",
    10752: "War",
    37: "Western",
}


def genre_name(genre_id: int) -> str:
    """Display name for a genre id, falling back to ``Genre <id>``."""
    return GENRE_NAMES.get(genre_id, f"Genre {genre_id}")
