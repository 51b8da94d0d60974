"""Services backing the chat assistant."""
