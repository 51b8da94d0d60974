"""Interactive chat loop."""
