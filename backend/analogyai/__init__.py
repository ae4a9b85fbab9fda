"""AnalogyAI: personalized analogies for hard topics."""

__version__ = "0.1.0"
