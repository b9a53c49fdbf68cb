# fetchers/__init__.py
from .discogs import DiscogsClient, find_folder

__all__ = ["DiscogsClient", "find_folder"]
