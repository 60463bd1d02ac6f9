"""JSON schemas shipped with inkshelf."""
