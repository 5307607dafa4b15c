"""tagcoder - LLM-assisted deductive coding of documents."""

__version__ = "0.1.0"
