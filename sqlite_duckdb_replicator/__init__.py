import importlib.metadata

from .main import main
from .replicator import full_refresh, incremental_refresh

try:
    __version__ = importlib.metadata.version("sqlite-duckdb-replicator")
except importlib.metadata.PackageNotFoundError:
    __version__ = "unknown"  # fallback version
