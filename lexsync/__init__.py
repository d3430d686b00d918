"""lexsync: versioned content synchronization for the lexicon reference app."""

__version__ = "0.1.0"
