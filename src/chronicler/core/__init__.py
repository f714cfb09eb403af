"""Domain models, collection layouts, errors and ports."""
