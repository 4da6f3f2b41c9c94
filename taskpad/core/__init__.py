"""GUI-agnostic core of the task-tree engine: models, tree operations and services."""
