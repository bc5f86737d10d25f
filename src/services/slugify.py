# src/services/slugify.py
import re
import unicodedata

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str, default: str = "") -> str:
    """Turn text into a slug: lowercase ascii, runs of anything else become one hyphen."""
    if not isinstance(text, str):
        return default
    # strip accents
    t = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    t = _NON_ALNUM_RE.sub("-", t.lower()).strip("-")
    return t or default


def numbered_slug(base: str, counter: int) -> str:
    """Collision candidate used when `base` is taken: bolo-de-cenoura-1, -2, ..."""
    return f"{base}-{counter}"
