"""Checkpoint/restart I/O."""
