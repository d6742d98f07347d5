"""Log the Anki cards reviewed today to a dated TOML file."""

__version__ = "0.1.0"
