"""Local (SQLite / in-process) infrastructure."""
