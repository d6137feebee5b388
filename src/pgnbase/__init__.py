"""pgnbase - Build and query local databases of chess games from PGN archives."""

__version__ = "0.1.0"
