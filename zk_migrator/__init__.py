"""ZooKeeper namespace migration: export a subtree and replay it on another cluster."""

__version__ = "0.1.0"
