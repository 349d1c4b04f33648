"""Schema snapshots, id generation and the diff engine."""
