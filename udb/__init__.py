"""UDB - personal knowledge base with a tool-using chat assistant."""

__version__ = "0.1.0"
