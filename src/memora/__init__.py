"""memora: spaced-repetition flashcards from markdown notes."""

__version__ = "0.1.0"
