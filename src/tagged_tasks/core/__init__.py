"""Core task store: models, codec, dependency graph, move engine and writer."""
